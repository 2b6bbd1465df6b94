"""Tests for share link publishing and resolution."""

from __future__ import annotations

import asyncio

import pytest


def _manager(store):
    from topnote.notes.share import ShareLinkManager

    return ShareLinkManager(store, origin="https://notes.test/")


class TestToggleShare:
    """Test publishing and unpublishing."""

    def test_toggle_keeps_token(self, memory_store) -> None:
        """Sharing twice keeps the token while is_public flips."""

        async def scenario():
            note = await memory_store.create("T", "<p>x</p>", "user-1")
            manager = _manager(memory_store)
            states = [(note.share_token, note.is_public)]

            first_url = await manager.toggle_share(note)
            states.append((note.share_token, note.is_public))
            second_url = await manager.toggle_share(note)
            states.append((note.share_token, note.is_public))
            third_url = await manager.toggle_share(note)
            return note, states, (first_url, second_url, third_url)

        note, states, urls = asyncio.run(scenario())

        token = states[1][0]
        assert states == [(None, False), (token, True), (token, False)]
        assert urls == (f"https://notes.test/share/{token}", None, f"https://notes.test/share/{token}")
        assert note.share_token == token

    def test_first_share_is_one_update(self, memory_store) -> None:
        """Token and public flag are written together."""

        async def scenario():
            note = await memory_store.create("T", "", "user-1")
            await _manager(memory_store).toggle_share(note)
            return note

        note = asyncio.run(scenario())

        assert len(memory_store.updates) == 1
        note_id, fields = memory_store.updates[0]
        assert note_id == note.id
        assert fields == {"share_token": note.share_token, "is_public": True}
        assert len(note.share_token) == 32

    def test_unshare_only_flips_flag(self, memory_store) -> None:
        async def scenario():
            note = await memory_store.create("T", "", "user-1")
            manager = _manager(memory_store)
            await manager.toggle_share(note)
            await manager.toggle_share(note)

        asyncio.run(scenario())

        assert memory_store.updates[1][1] == {"is_public": False}

    def test_failure_leaves_note_unchanged(self, memory_store) -> None:
        """A store failure raises PersistenceError and nothing changes."""
        from topnote.errors import PersistenceError, StoreError

        async def scenario():
            note = await memory_store.create("T", "", "user-1")
            memory_store.fail_with = StoreError("denied", status_code=403, recoverable=False)
            with pytest.raises(PersistenceError) as excinfo:
                await _manager(memory_store).toggle_share(note)
            return note, excinfo.value

        note, error = asyncio.run(scenario())

        assert note.share_token is None
        assert note.is_public is False
        assert error.status_code == 403
        assert not error.recoverable
        assert isinstance(error.__cause__, StoreError)

    def test_share_url_private(self) -> None:
        from topnote.notes.models import Note

        note = Note("n", "T", "", "u", "", "", is_public=False, share_token="abc")

        assert _manager(None).share_url(note) is None


class TestResolve:
    """Test opening a share link."""

    def test_public_note_resolves(self, memory_store) -> None:
        async def scenario():
            note = await memory_store.create("T", "<p>shared</p>", "user-1")
            manager = _manager(memory_store)
            await manager.toggle_share(note)
            return await manager.resolve(note.share_token)

        resolved = asyncio.run(scenario())

        assert resolved.content == "<p>shared</p>"

    def test_private_note_not_found(self, memory_store) -> None:
        """An unshared note's old token no longer resolves."""
        from topnote.errors import NotFoundError

        async def scenario():
            note = await memory_store.create("T", "", "user-1")
            manager = _manager(memory_store)
            await manager.toggle_share(note)
            await manager.toggle_share(note)
            with pytest.raises(NotFoundError):
                await manager.resolve(note.share_token)

        asyncio.run(scenario())

    @pytest.mark.parametrize("token", ["", "does-not-exist"])
    def test_unknown_token(self, memory_store, token: str) -> None:
        from topnote.errors import NotFoundError

        async def scenario():
            with pytest.raises(NotFoundError):
                await _manager(memory_store).resolve(token)

        asyncio.run(scenario())
