"""Tests for IdentityRegistry."""

import asyncio

import pytest

from modules.signaling.messages import MSG_ID_IN_USE, MSG_INVALID_ID


class TestRegisterValidation:
    """Only exactly-4-digit identities are accepted."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "user_id",
        ["", "123", "12345", "abcd", "12a4", "１２３４", "12 4", None, "-123", "1.23", "\n"],
    )
    async def test_malformed_rejected(self, registry, make_connection, user_id):
        conn = make_connection("a")
        result = await registry.register(user_id, conn)

        assert result.success is False
        assert result.error == MSG_INVALID_ID
        assert len(registry) == 0
        assert registry.identity_of(conn) is None

    @pytest.mark.asyncio
    async def test_malformed_leaves_existing_binding(self, registry, make_connection):
        conn = make_connection("a")
        await registry.register("1111", conn)

        result = await registry.register("xyz", conn)

        assert result.success is False
        assert registry.current_identities() == ["1111"]
        assert registry.identity_of(conn) == "1111"

    @pytest.mark.asyncio
    async def test_whitespace_trimmed(self, registry, make_connection):
        conn = make_connection("a")
        result = await registry.register("  0042 ", conn)

        assert result.success is True
        assert result.user_id == "0042"
        assert registry.resolve("0042") is conn

    @pytest.mark.asyncio
    async def test_integer_coerced_to_string(self, registry, make_connection):
        conn = make_connection("a")
        result = await registry.register(1234, conn)

        assert result.success is True
        assert registry.current_identities() == ["1234"]

    @pytest.mark.asyncio
    async def test_integral_float_coerced_to_string(self, registry, make_connection):
        conn = make_connection("a")
        result = await registry.register(1234.0, conn)

        assert result.success is True
        assert registry.current_identities() == ["1234"]

    @pytest.mark.asyncio
    async def test_fractional_float_rejected(self, registry, make_connection):
        result = await registry.register(1234.5, make_connection("a"))

        assert result.success is False
        assert len(registry) == 0


class TestRegisterSemantics:
    """Idempotency, identity replacement and conflict policy."""

    @pytest.mark.asyncio
    async def test_first_registration_changes_membership(self, registry, make_connection):
        conn = make_connection("a")
        result = await registry.register("1234", conn)

        assert result.success is True
        assert result.changed is True
        assert result.released is None
        assert registry.resolve("1234") is conn
        assert registry.identity_of(conn) == "1234"

    @pytest.mark.asyncio
    async def test_same_connection_same_id_is_idempotent(self, registry, make_connection):
        conn = make_connection("a")
        await registry.register("1234", conn)

        result = await registry.register("1234", conn)

        assert result.success is True
        assert result.changed is False
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_reregister_releases_previous_identity(self, registry, make_connection):
        conn = make_connection("a")
        await registry.register("1111", conn)

        result = await registry.register("2222", conn)

        assert result.success is True
        assert result.released == "1111"
        assert registry.current_identities() == ["2222"]
        assert registry.resolve("1111") is None
        assert registry.identity_of(conn) == "2222"

    @pytest.mark.asyncio
    async def test_conflict_rejects_newcomer(self, registry, make_connection):
        a = make_connection("a")
        b = make_connection("b")
        await registry.register("1234", a)

        result = await registry.register("1234", b)

        assert result.success is False
        assert result.error == MSG_ID_IN_USE
        assert registry.resolve("1234") is a
        assert registry.identity_of(b) is None

    @pytest.mark.asyncio
    async def test_conflict_keeps_newcomers_own_identity(self, registry, make_connection):
        a = make_connection("a")
        b = make_connection("b")
        await registry.register("1234", a)
        await registry.register("5678", b)

        result = await registry.register("1234", b)

        assert result.success is False
        assert registry.identity_of(b) == "5678"
        assert registry.current_identities() == ["1234", "5678"]

    @pytest.mark.asyncio
    async def test_conflict_policy_is_stable_across_trials(self, registry, make_connection):
        a = make_connection("a")
        await registry.register("1234", a)

        for i in range(20):
            result = await registry.register("1234", make_connection(f"b{i}"))
            assert result.success is False

        assert registry.resolve("1234") is a
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_concurrent_registrations_have_one_winner(self, registry, make_connection):
        conns = [make_connection(f"c{i}") for i in range(10)]

        results = await asyncio.gather(*(registry.register("7777", c) for c in conns))

        winners = [c for c, r in zip(conns, results) if r.success]
        assert len(winners) == 1
        assert registry.resolve("7777") is winners[0]
        assert len(registry.sockets) == 1


class TestUnregister:

    @pytest.mark.asyncio
    async def test_unregister_releases_identity(self, registry, make_connection):
        a = make_connection("a")
        await registry.register("1234", a)

        freed = await registry.unregister_by_connection(a)

        assert freed == "1234"
        assert registry.resolve("1234") is None
        assert "1234" not in registry
        assert registry.sockets == {}

    @pytest.mark.asyncio
    async def test_identity_reusable_after_unregister(self, registry, make_connection):
        a = make_connection("a")
        b = make_connection("b")
        await registry.register("1234", a)
        await registry.unregister_by_connection(a)

        result = await registry.register("1234", b)

        assert result.success is True
        assert registry.resolve("1234") is b

    @pytest.mark.asyncio
    async def test_unregister_unknown_connection(self, registry, make_connection):
        await registry.register("1111", make_connection("a"))

        freed = await registry.unregister_by_connection(make_connection("b"))

        assert freed is None
        assert registry.current_identities() == ["1111"]


class TestSnapshot:

    @pytest.mark.asyncio
    async def test_current_identities_sorted(self, registry, make_connection):
        for user_id in ["9000", "0001", "4321", "1234"]:
            await registry.register(user_id, make_connection(user_id))

        assert registry.current_identities() == ["0001", "1234", "4321", "9000"]

    @pytest.mark.asyncio
    async def test_resolve_normalizes_input(self, registry, make_connection):
        a = make_connection("a")
        await registry.register("0042", a)

        assert registry.resolve(" 0042 ") is a
        assert registry.resolve("9999") is None
        assert registry.resolve(None) is None
