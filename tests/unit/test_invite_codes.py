"""Unit tests for group invite codes."""

import pytest

from betthat.social.group_service import create_group, join_group_by_code
from betthat.social.invite_codes import (
    INVITE_ALPHABET,
    INVITE_LENGTH,
    generate_invite_code,
    generate_unique_invite_code,
    is_valid_invite_code,
    normalize_invite_code,
)


class TestInviteCodes:
    def test_code_length(self):
        assert len(generate_invite_code()) == INVITE_LENGTH == 8

    def test_alphabet_has_no_lookalike_letters(self):
        assert len(INVITE_ALPHABET) == 32
        assert not set("ILOU") & set(INVITE_ALPHABET)
        for _ in range(100):
            assert is_valid_invite_code(generate_invite_code())

    def test_normalize_drops_separators(self):
        assert normalize_invite_code("  abcd-efgh ") == "ABCDEFGH"
        assert normalize_invite_code("ABCD EFGH") == "ABCDEFGH"

    def test_normalize_folds_lookalikes(self):
        assert normalize_invite_code("oil2o3o4") == "01120304"

    def test_validity(self):
        assert is_valid_invite_code("7K3M9QXZ")
        assert not is_valid_invite_code("7K3M9QX")
        assert not is_valid_invite_code("7K3M9QXU")

    @pytest.mark.asyncio
    async def test_unique_code_not_in_use(self, db_session, make_user):
        owner = await make_user("owner")
        group = await create_group(db_session, "Crew", None, owner.id)
        code = await generate_unique_invite_code(db_session)
        assert code != group.invite_code
        assert len(code) == INVITE_LENGTH

    @pytest.mark.asyncio
    async def test_join_with_dashed_lowercase_code(self, db_session, make_user):
        owner = await make_user("owner")
        guest = await make_user("guest")
        group = await create_group(db_session, "Crew", None, owner.id)
        typed = f"{group.invite_code[:4]}-{group.invite_code[4:]}".lower()

        joined = await join_group_by_code(db_session, guest.id, typed)

        assert joined.id == group.id

    @pytest.mark.asyncio
    async def test_malformed_code_rejected(self, db_session, make_user):
        guest = await make_user("guest")
        with pytest.raises(ValueError, match="Invalid invite code"):
            await join_group_by_code(db_session, guest.id, "short")
