"""Tests for identity resolution and provider linking."""

import logging
import uuid
from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from helparound.core import ConflictError, InvariantViolation, NotFoundError
from helparound.models import AuthProvider, OAuthAccount, OAuthIdentity, User
from helparound.services import DuplicateRecordError, IdentityResolver, SQLIdentityStore
from helparound.services.passwords import hash_password


async def _links_for(store, provider, provider_id):
    link = await store.get_link(provider, provider_id)
    return [] if link is None else [link]


class TestResolveOrCreate:
    async def test_new_identity_creates_verified_user_and_link(self, resolver, store, google_identity):
        user = await resolver.resolve_or_create(google_identity)

        assert user.email == "g@example.com"
        assert user.first_name == "G"
        assert user.last_name == "Ex"
        assert user.is_verified is True
        assert user.password_hash is None

        links = await store.list_links(user.id)
        assert len(links) == 1
        assert links[0].provider == AuthProvider.GOOGLE
        assert links[0].provider_id == "sub123"

    async def test_missing_names_default_to_empty(self, resolver):
        identity = OAuthIdentity(
            provider=AuthProvider.FACEBOOK, provider_id="fb-1", email="n@example.com"
        )

        user = await resolver.resolve_or_create(identity)

        assert user.first_name == ""
        assert user.last_name == ""

    async def test_resolution_is_idempotent(self, resolver, store, google_identity):
        first = await resolver.resolve_or_create(google_identity)
        second = await resolver.resolve_or_create(google_identity)

        assert first.id == second.id
        assert await store.count_links(first.id) == 1
        assert len(await _links_for(store, AuthProvider.GOOGLE, "sub123")) == 1

    async def test_existing_email_is_linked_not_duplicated(self, resolver, store, facebook_identity):
        existing = await store.insert_user(
            User(email="g@example.com", first_name="Gee", password_hash=hash_password("password123"))
        )

        user = await resolver.resolve_or_create(facebook_identity)

        assert user.id == existing.id
        assert user.first_name == "Gee"
        link = await store.get_link(AuthProvider.FACEBOOK, "fb-456")
        assert link is not None
        assert link.user_id == existing.id

    async def test_email_is_normalized(self, resolver, store, google_identity):
        existing = await store.insert_user(User(email="g@example.com"))

        user = await resolver.resolve_or_create(replace(google_identity, email="  G@Example.COM "))

        assert user.id == existing.id

    async def test_linked_identity_wins_over_changed_email(self, resolver, store, google_identity):
        original = await resolver.resolve_or_create(google_identity)
        other = await store.insert_user(User(email="changed@example.com"))

        user = await resolver.resolve_or_create(replace(google_identity, email="changed@example.com"))

        assert user.id == original.id
        assert user.id != other.id
        assert await store.count_links(other.id) == 0

    async def test_second_provider_with_same_email_joins_existing_user(
        self, resolver, store, google_identity, facebook_identity
    ):
        google_user = await resolver.resolve_or_create(google_identity)
        facebook_user = await resolver.resolve_or_create(facebook_identity)

        assert google_user.id == facebook_user.id
        assert await store.count_links(google_user.id) == 2


class TestResolveOrCreateStoreCalls:
    """Branch behaviour checked against a mocked store."""

    @pytest.fixture
    def mock_store(self):
        return AsyncMock(spec=SQLIdentityStore)

    async def test_existing_link_does_not_read_by_email(self, mock_store, google_identity):
        owner = User(email="a@b.com")
        mock_store.get_link.return_value = OAuthAccount(
            provider=AuthProvider.GOOGLE, provider_id="sub123", user_id=owner.id
        )
        mock_store.get_user.return_value = owner

        user = await IdentityResolver(mock_store).resolve_or_create(google_identity)

        assert user is owner
        mock_store.get_user_by_email.assert_not_called()
        mock_store.insert_user.assert_not_called()
        mock_store.insert_link.assert_not_called()

    async def test_store_errors_propagate(self, mock_store, google_identity):
        mock_store.get_link.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError, match="connection lost"):
            await IdentityResolver(mock_store).resolve_or_create(google_identity)

    async def test_duplicate_is_retried_once_then_propagates(self, mock_store, google_identity):
        mock_store.get_link.return_value = None
        mock_store.get_user_by_email.return_value = User(email="g@example.com")
        mock_store.insert_link.side_effect = DuplicateRecordError("UNIQUE constraint failed")

        with pytest.raises(DuplicateRecordError):
            await IdentityResolver(mock_store).resolve_or_create(google_identity)

        assert mock_store.get_link.await_count == 2
        assert mock_store.insert_link.await_count == 2
        mock_store.delete_user.assert_not_called()

    async def test_user_created_for_a_lost_link_is_deleted(self, mock_store, google_identity):
        created = User(email="g@example.com")
        mock_store.get_link.return_value = None
        mock_store.get_user_by_email.return_value = None
        mock_store.insert_user.return_value = created
        mock_store.insert_link.side_effect = DuplicateRecordError("UNIQUE constraint failed")

        with pytest.raises(DuplicateRecordError):
            await IdentityResolver(mock_store).resolve_or_create(google_identity)

        assert mock_store.delete_user.await_count == 2
        mock_store.delete_user.assert_awaited_with(created.id)


class RacingStore(SQLIdentityStore):
    """Lets a competing resolution for the same identity land first."""

    def __init__(self, session, identity):
        super().__init__(session)
        self.identity = identity
        self.raced = False

    async def insert_user(self, user):
        if not self.raced:
            self.raced = True
            winner = await super().insert_user(
                User(email=user.email, first_name="Winner", is_verified=True)
            )
            await super().insert_link(
                OAuthAccount(
                    provider=self.identity.provider,
                    provider_id=self.identity.provider_id,
                    user_id=winner.id,
                )
            )
        return await super().insert_user(user)


class LinkRacingStore(SQLIdentityStore):
    """Binds the identity to a different user just before the first link insert."""

    def __init__(self, session):
        super().__init__(session)
        self.raced = False

    async def insert_link(self, link):
        if not self.raced:
            self.raced = True
            owner = await super().insert_user(
                User(email="owner@example.com", first_name="Owner", is_verified=True)
            )
            await super().insert_link(
                OAuthAccount(
                    provider=link.provider,
                    provider_id=link.provider_id,
                    user_id=owner.id,
                )
            )
        return await super().insert_link(link)


class TestConcurrentResolution:
    async def test_lost_link_insert_removes_the_new_user(self, session, google_identity):
        store = LinkRacingStore(session)
        resolver = IdentityResolver(store)

        user = await resolver.resolve_or_create(google_identity)

        assert user.email == "owner@example.com"
        assert await store.get_user_by_email("g@example.com") is None
        assert await store.count_links(user.id) == 1

    async def test_lost_link_insert_keeps_an_existing_user(self, session, google_identity):
        store = LinkRacingStore(session)
        existing = await store.insert_user(
            User(email="g@example.com", password_hash=hash_password("password123"))
        )
        existing_id = existing.id

        user = await IdentityResolver(store).resolve_or_create(google_identity)

        assert user.email == "owner@example.com"
        kept = await store.get_user_by_email("g@example.com")
        assert kept is not None
        assert kept.id == existing_id
        assert await store.count_links(existing_id) == 0

    async def test_lost_race_resolves_to_winning_user(self, session, google_identity, caplog):
        store = RacingStore(session, google_identity)
        resolver = IdentityResolver(store)

        with caplog.at_level(logging.WARNING, logger="helparound.services.identity"):
            user = await resolver.resolve_or_create(google_identity)

        assert user.first_name == "Winner"
        assert await store.count_links(user.id) == 1
        assert await store.get_user_by_email("g@example.com") is not None
        assert "retrying lookup" in caplog.text

    async def test_unique_constraint_rejects_duplicate_identity(self, store):
        first = await store.insert_user(User(email="a@example.com"))
        second = await store.insert_user(User(email="b@example.com"))
        await store.insert_link(
            OAuthAccount(provider=AuthProvider.GOOGLE, provider_id="same", user_id=first.id)
        )

        with pytest.raises(DuplicateRecordError):
            await store.insert_link(
                OAuthAccount(provider=AuthProvider.GOOGLE, provider_id="same", user_id=second.id)
            )

    async def test_unique_constraint_rejects_duplicate_email(self, store):
        await store.insert_user(User(email="a@example.com"))

        with pytest.raises(DuplicateRecordError):
            await store.insert_user(User(email="a@example.com"))


class TestLinkProvider:
    async def test_links_identity_to_user(self, resolver, store, google_identity):
        user = await store.insert_user(User(email="owner@example.com", first_name="Own"))

        link = await resolver.link_provider(user.id, google_identity)

        assert link.user_id == user.id
        assert link.provider == AuthProvider.GOOGLE
        assert link.provider_id == "sub123"
        refreshed = await store.get_user(user.id)
        assert refreshed.email == "owner@example.com"
        assert refreshed.first_name == "Own"

    async def test_unknown_user_is_not_found(self, resolver, google_identity):
        with pytest.raises(NotFoundError, match="User not found"):
            await resolver.link_provider(uuid.uuid4(), google_identity)

    async def test_identity_linked_to_other_user_conflicts(self, resolver, store, google_identity):
        owner = await resolver.resolve_or_create(google_identity)
        other = await store.insert_user(User(email="other@example.com"))

        with pytest.raises(ConflictError, match="already linked"):
            await resolver.link_provider(other.id, google_identity)

        assert await store.count_links(other.id) == 0
        assert await store.count_links(owner.id) == 1

    async def test_identity_linked_to_same_user_conflicts(self, resolver, google_identity):
        owner = await resolver.resolve_or_create(google_identity)

        with pytest.raises(ConflictError):
            await resolver.link_provider(owner.id, google_identity)

    async def test_duplicate_insert_is_reported_as_conflict(self, google_identity):
        mock_store = AsyncMock(spec=SQLIdentityStore)
        mock_store.get_user.return_value = User(email="x@example.com")
        mock_store.get_link.return_value = None
        mock_store.insert_link.side_effect = DuplicateRecordError("UNIQUE constraint failed")

        with pytest.raises(ConflictError):
            await IdentityResolver(mock_store).link_provider(uuid.uuid4(), google_identity)


class TestUnlinkProvider:
    async def test_last_link_without_password_is_rejected(self, resolver, store, google_identity):
        user = await resolver.resolve_or_create(google_identity)

        with pytest.raises(InvariantViolation, match="last login method"):
            await resolver.unlink_provider(user.id, AuthProvider.GOOGLE)

        assert await store.get_link(AuthProvider.GOOGLE, "sub123") is not None

    async def test_one_of_two_links_can_be_removed(
        self, resolver, store, google_identity, facebook_identity
    ):
        user = await resolver.resolve_or_create(google_identity)
        await resolver.link_provider(user.id, facebook_identity)

        await resolver.unlink_provider(user.id, AuthProvider.FACEBOOK)

        links = await store.list_links(user.id)
        assert [link.provider for link in links] == [AuthProvider.GOOGLE]

    async def test_last_link_with_password_can_be_removed(self, resolver, store, google_identity):
        user = await store.insert_user(
            User(email="g@example.com", password_hash=hash_password("password123"))
        )
        await resolver.link_provider(user.id, google_identity)

        await resolver.unlink_provider(user.id, AuthProvider.GOOGLE)

        assert await store.count_links(user.id) == 0

    async def test_provider_not_linked(self, resolver, google_identity):
        user = await resolver.resolve_or_create(google_identity)

        with pytest.raises(NotFoundError, match="not linked"):
            await resolver.unlink_provider(user.id, AuthProvider.FACEBOOK)
