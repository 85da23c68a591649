from kanban_access.api.errors import register_exception_handlers
