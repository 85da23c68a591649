from kanban_access.logs.server_log import api_logger
from kanban_access.logs.debug_log import debug_logger, log_function, DebugLogger
