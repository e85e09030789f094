"""
Message numbers and templates used by the init-database loggers.

The message number selects the log level:

    0-999      TRACE
    1000-1999  DEBUG
    2000-2999  INFO
    3000-3999  WARN
    4000-4999  ERROR
    5000-5999  FATAL
    6000+      PANIC
"""

MESSAGE_ID_PREFIX = "init-database-"

MESSAGES = {
    # Trace: entry/exit of public operations.
    10: "Enter initialize_config().",
    19: "Exit  initialize_config() returned config ID {0}; elapsed {1:.6f}s.",
    20: "Enter set_observer_origin({0}).",
    29: "Exit  set_observer_origin({0}); elapsed {1:.6f}s.",
    30: "Enter register_observer({0}).",
    39: "Exit  register_observer({0}); elapsed {1:.6f}s.",
    40: "Enter set_log_level({0}).",
    49: "Exit  set_log_level({0}); elapsed {1:.6f}s.",
    50: "Enter unregister_observer({0}).",
    59: "Exit  unregister_observer({0}); elapsed {1:.6f}s.",
    60: "Enter initialize().",
    69: "Exit  initialize(); elapsed {0:.6f}s.",
    # Debug: entry parameters.
    1001: "initialize_config() parameters: {0}",
    1002: "register_observer() parameters: {0}",
    1003: "set_log_level() parameters: {0}",
    1004: "unregister_observer() parameters: {0}",
    1005: "initialize() parameters: {0}",
    1010: "Constructed {0} handle (kind={1}).",
    # Info.
    2001: "Added data source: {0}",
    2002: "No new configuration created. Default configuration already exists (config ID {0}).",
    2003: "Created and set default configuration (config ID {0}): {1}",
    2004: "Applied schema to {0}",
    # Warn.
    3001: "Observer {0} failed to receive message: {1}",
    # Error.
    4001: "Initialization failed: {0}",
}


def format_message(message_number: int, *details) -> str:
    """
    Render a message template.

    Unknown message numbers render their details verbatim so nothing is lost.
    """
    template = MESSAGES.get(message_number)
    if template is None:
        return " ".join(str(d) for d in details)
    return template.format(*details)
