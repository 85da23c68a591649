import pytest

from kanban_access.services.user_service import UserService


class TestUserService:
    """Тесты зеркала профилей пользователей"""

    @pytest.mark.asyncio
    async def test_ensure_profile_creates(self, db_session):
        user = await UserService.ensure_profile(db_session, "idp-1", " Alice@Example.com ", "Alice")

        assert user.email == "alice@example.com"
        assert await UserService.get_by_id(db_session, "idp-1") is user

    @pytest.mark.asyncio
    async def test_ensure_profile_refreshes(self, db_session):
        await UserService.ensure_profile(db_session, "idp-1", "old@example.com", "Alice")

        user = await UserService.ensure_profile(db_session, "idp-1", "new@example.com")

        assert user.email == "new@example.com"
        # Имя не затирается, если провайдер его не прислал
        assert user.name == "Alice"

    @pytest.mark.asyncio
    async def test_get_by_email_ignores_case(self, db_session, make_user):
        user = await make_user(email="bob@example.com")

        assert await UserService.get_by_email(db_session, "BOB@example.com") is user
        assert await UserService.get_by_email(db_session, "nobody@example.com") is None
