# -*- coding: utf-8 -*-
"""
Tests du relais temps réel : table des salles, diffusion et décodage des messages.
"""

import json

import pytest
from unittest.mock import AsyncMock

from musico.api.services.relay_service import RealtimeRelay, RelayNamespace, player_room, playlist_room


@pytest.fixture
def relay():
    return RealtimeRelay()


@pytest.fixture
def make_websocket(mocker):
    def _make_websocket():
        websocket = mocker.AsyncMock()
        websocket.send_json = mocker.AsyncMock()
        websocket.close = mocker.AsyncMock()
        return websocket
    return _make_websocket


class TestRoomMembership:

    @pytest.mark.asyncio
    async def test_register_starts_without_rooms(self, relay, make_websocket):
        conn = await relay.register(make_websocket(), "u1", "/playlists")

        assert relay.rooms_of(conn.id) == set()
        assert relay.get_connection_count() == 1
        assert relay.get_connection_count("/playlists") == 1
        assert relay.get_connection_count("/player") == 0

    @pytest.mark.asyncio
    async def test_join_and_leave(self, relay, make_websocket):
        conn = await relay.register(make_websocket(), "u1", "/playlists")

        assert await relay.join(conn.id, playlist_room("p1")) is True
        assert await relay.join(conn.id, playlist_room("p2")) is True
        assert relay.rooms_of(conn.id) == {"playlist:p1", "playlist:p2"}
        assert relay.members("playlist:p1") == [conn.id]

        assert await relay.leave(conn.id, playlist_room("p1")) is True
        assert await relay.leave(conn.id, playlist_room("p1")) is False
        assert relay.rooms_of(conn.id) == {"playlist:p2"}

    @pytest.mark.asyncio
    async def test_join_unknown_connection(self, relay):
        assert await relay.join("ghost", "playlist:p1") is False

    @pytest.mark.asyncio
    async def test_unregister_leaves_every_room(self, relay, make_websocket):
        conn = await relay.register(make_websocket(), "u1", "/player")
        await relay.join(conn.id, player_room("u1"))
        await relay.join(conn.id, playlist_room("p1"))

        rooms = await relay.unregister(conn.id)

        assert rooms == {"player:u1", "playlist:p1"}
        assert relay.members("player:u1") == []
        assert relay.get_connection_count() == 0
        assert await relay.unregister(conn.id) == set()


class TestBroadcast:

    @pytest.mark.asyncio
    async def test_broadcast_excludes_sender(self, relay, make_websocket):
        ws_a, ws_b, ws_c = make_websocket(), make_websocket(), make_websocket()
        a = await relay.register(ws_a, "u1", "/playlists")
        b = await relay.register(ws_b, "u2", "/playlists")
        await relay.register(ws_c, "u3", "/playlists")
        await relay.join(a.id, "playlist:p1")
        await relay.join(b.id, "playlist:p1")

        delivered = await relay.broadcast("playlist:p1", "playlist:updated", {"playlistId": "p1"}, exclude=a.id)

        assert delivered == 1
        ws_b.send_json.assert_awaited_once_with({"event": "playlist:updated", "data": {"playlistId": "p1"}})
        ws_a.send_json.assert_not_awaited()
        ws_c.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_broadcast_to_empty_room(self, relay):
        assert await relay.broadcast("playlist:nobody", "playlist:updated", {}) == 0

    @pytest.mark.asyncio
    async def test_failed_send_unregisters_member(self, relay, make_websocket):
        ws_ok, ws_broken = make_websocket(), make_websocket()
        ws_broken.send_json.side_effect = RuntimeError("socket closed")
        ok = await relay.register(ws_ok, "u1", "/player")
        broken = await relay.register(ws_broken, "u1", "/player")
        await relay.join(ok.id, "player:u1")
        await relay.join(broken.id, "player:u1")

        delivered = await relay.broadcast("player:u1", "seek", {"position": 12})

        assert delivered == 1
        assert relay.members("player:u1") == [ok.id]
        ws_broken.close.assert_awaited_once_with(code=1011)
        ws_ok.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_send_on_already_closed_socket(self, relay, make_websocket):
        ws = make_websocket()
        ws.send_json.side_effect = RuntimeError("socket closed")
        ws.close.side_effect = RuntimeError("already closed")
        conn = await relay.register(ws, "u1", "/player")

        assert await relay.send(conn.id, "pong", None) is False
        assert relay.get_connection_count() == 0

    @pytest.mark.asyncio
    async def test_send_to_single_connection(self, relay, make_websocket):
        ws = make_websocket()
        conn = await relay.register(ws, "u1", "/player")

        assert await relay.send(conn.id, "pong", None) is True
        assert await relay.send("ghost", "pong", None) is False
        ws.send_json.assert_awaited_once_with({"event": "pong", "data": None})

    @pytest.mark.asyncio
    async def test_close_all(self, relay, make_websocket):
        ws = make_websocket()
        conn = await relay.register(ws, "u1", "/player")
        await relay.join(conn.id, "player:u1")

        await relay.close_all()

        ws.close.assert_awaited_once()
        assert relay.get_connection_count() == 0
        assert relay.members("player:u1") == []


class TestDispatch:

    @pytest.fixture
    def namespace(self, relay):
        namespace = RelayNamespace(relay)
        namespace.echo = AsyncMock()
        namespace.on("echo", namespace.echo)
        return namespace

    @pytest.mark.asyncio
    async def test_dispatch_calls_handler_with_data(self, namespace, relay, make_websocket):
        conn = await relay.register(make_websocket(), "u1", "/")

        await namespace.dispatch(conn, json.dumps({"event": "echo", "data": {"x": 1}}))

        namespace.echo.assert_awaited_once_with(conn, {"x": 1})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [
        "not json",
        json.dumps(["echo"]),
        json.dumps({"data": {}}),
        json.dumps({"event": 3}),
        json.dumps({"event": "unknown"}),
        pytest.param("[" * 100000, id="deeply-nested"),
    ])
    async def test_malformed_messages_are_dropped(self, namespace, relay, make_websocket, message):
        ws = make_websocket()
        conn = await relay.register(ws, "u1", "/")

        await namespace.dispatch(conn, message)

        namespace.echo.assert_not_awaited()
        ws.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_errors_are_contained(self, namespace, relay, make_websocket):
        conn = await relay.register(make_websocket(), "u1", "/")
        namespace.echo.side_effect = ValueError("boom")

        await namespace.dispatch(conn, json.dumps({"event": "echo"}))

        namespace.echo.assert_awaited_once_with(conn, None)

    @pytest.mark.asyncio
    async def test_ping_answers_sender_only(self, namespace, relay, make_websocket):
        ws_a, ws_b = make_websocket(), make_websocket()
        a = await relay.register(ws_a, "u1", "/")
        b = await relay.register(ws_b, "u1", "/")
        await relay.join(a.id, "player:u1")
        await relay.join(b.id, "player:u1")

        await namespace.dispatch(a, json.dumps({"event": "ping", "data": 7}))

        ws_a.send_json.assert_awaited_once_with({"event": "pong", "data": 7})
        ws_b.send_json.assert_not_awaited()
