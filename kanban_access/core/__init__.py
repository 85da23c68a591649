from kanban_access.core.config import Settings, get_settings
