"""
Exception types for the ESPHome local bridge
Network and parse failures never escape the discovery/polling core; these
cover configuration and hub-side command errors only
"""


class BridgeError(Exception):
    """Base class for bridge errors"""


class ConfigError(BridgeError):
    """Configuration file is unreadable or fails validation"""


class CommandRejected(BridgeError):
    """A command targets a read-only property or an unknown device"""


class UnknownDevice(BridgeError):
    """No device or property is registered under the requested id"""
