from kanban_access.api.dependencies.auth import get_current_user_id
from kanban_access.api.dependencies.permissions import require_board_role
from kanban_access.api.dependencies.request_meta import get_request_meta
