"""
Plugin bridge tests

Most cases drive the connection hooks directly with an in-memory connection;
the last one runs a real loopback round trip against the sandbox client.
"""

import asyncio
import json

import pytest

from forage.app.services.bridge.plugin_bridge import NOT_CONNECTED_MESSAGE, PluginBridge
from forage.app.services.sandbox.client import SandboxClient
from forage.app.shared.error_handler import (
    InvalidParamsError,
    NodeNotFoundError,
    PluginDisconnectedError,
    PluginNotConnectedError,
    RemoteCommandError,
    RequestTimeoutError,
)


class FakeConnection:
    """Records outbound frames; optionally fails on send"""

    def __init__(self, fail_with=None):
        self.sent = []
        self.closed = False
        self.fail_with = fail_with

    async def send(self, raw):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(json.loads(raw))

    async def close(self):
        self.closed = True


async def wait_for_sent(connection, count=1):
    for _ in range(100):
        if len(connection.sent) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} frame(s), got {len(connection.sent)}")


def reply(bridge, request_id, result=None, error=None):
    frame = {"id": request_id, "type": "response"}
    if error is not None:
        frame["error"] = error
    else:
        frame["result"] = result
    bridge._on_message(json.dumps(frame))


@pytest.mark.asyncio
async def test_send_without_connection_fails_fast():
    bridge = PluginBridge()

    with pytest.raises(PluginNotConnectedError) as exc_info:
        await bridge.send("getPages")

    assert exc_info.value.message == NOT_CONNECTED_MESSAGE
    assert bridge.pending_count == 0


@pytest.mark.asyncio
async def test_response_resolves_request():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    task = asyncio.create_task(bridge.send("getChildren", {"nodeId": "1:10"}))
    await wait_for_sent(connection)

    assert connection.sent[0] == {"id": "1", "method": "getChildren", "params": {"nodeId": "1:10"}}
    assert bridge.pending_count == 1

    reply(bridge, "1", result={"children": []})

    assert await task == {"children": []}
    assert bridge.pending_count == 0


@pytest.mark.asyncio
async def test_out_of_order_responses_reach_their_callers():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    first = asyncio.create_task(bridge.send("getPages"))
    second = asyncio.create_task(bridge.send("getStyles"))
    await wait_for_sent(connection, 2)

    assert [frame["id"] for frame in connection.sent] == ["1", "2"]
    assert "params" not in connection.sent[0]

    reply(bridge, "2", result="styles")
    reply(bridge, "1", result="pages")

    assert await first == "pages"
    assert await second == "styles"


@pytest.mark.asyncio
async def test_error_response_is_rebuilt_locally():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    task = asyncio.create_task(bridge.send("getNodeDetail", {"nodeId": "404:1"}))
    await wait_for_sent(connection)
    reply(bridge, "1", error={"code": "NODE_NOT_FOUND", "message": "Node not found: 404:1"})

    with pytest.raises(NodeNotFoundError) as exc_info:
        await task
    assert exc_info.value.code == "NODE_NOT_FOUND"
    assert exc_info.value.message == "[NODE_NOT_FOUND] Node not found: 404:1"


@pytest.mark.asyncio
async def test_unknown_error_code_becomes_remote_error():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    task = asyncio.create_task(bridge.send("getPages"))
    await wait_for_sent(connection)
    reply(bridge, "1", error={"code": "SOMETHING_NEW", "message": "?"})

    with pytest.raises(RemoteCommandError):
        await task


@pytest.mark.asyncio
async def test_request_times_out():
    bridge = PluginBridge(request_timeout=0.05)
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    with pytest.raises(RequestTimeoutError, match=r"Request timed out after 0.05s: getPages"):
        await bridge.send("getPages")

    assert bridge.pending_count == 0

    # A late answer is ignored
    reply(bridge, "1", result="late")
    assert bridge.pending_count == 0


@pytest.mark.asyncio
async def test_disconnect_rejects_pending_requests():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    task = asyncio.create_task(bridge.send("getPages"))
    await wait_for_sent(connection)
    bridge._on_connection_closed(connection)

    with pytest.raises(PluginDisconnectedError):
        await task
    assert not bridge.connected
    assert bridge.pending_count == 0


@pytest.mark.asyncio
async def test_new_connection_evicts_previous_one():
    bridge = PluginBridge()
    old = FakeConnection()
    new = FakeConnection()
    bridge._on_connection_open(old)

    task = asyncio.create_task(bridge.send("getPages"))
    await wait_for_sent(old)
    bridge._on_connection_open(new)

    with pytest.raises(PluginDisconnectedError):
        await task
    for _ in range(3):
        await asyncio.sleep(0)
    assert old.closed

    # The evicted connection closing late must not clear the new one
    bridge._on_connection_closed(old)
    assert bridge.connected

    follow_up = asyncio.create_task(bridge.send("getPages"))
    await wait_for_sent(new)
    reply(bridge, new.sent[0]["id"], result=[])
    assert await follow_up == []


@pytest.mark.asyncio
async def test_stray_and_malformed_frames_are_dropped():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    task = asyncio.create_task(bridge.send("getPages"))
    await wait_for_sent(connection)

    bridge._on_message("not json")
    bridge._on_message(json.dumps({"type": "response"}))
    reply(bridge, "999", result="nobody asked")
    assert bridge.pending_count == 1

    bridge._on_message(json.dumps({"id": "1", "type": "response", "result": "ok"}).encode("utf-8"))
    assert await task == "ok"


@pytest.mark.asyncio
async def test_failed_send_rejects_request():
    bridge = PluginBridge()
    bridge._on_connection_open(FakeConnection(fail_with=ConnectionResetError("reset")))

    with pytest.raises(PluginDisconnectedError, match="reset"):
        await bridge.send("getPages")
    assert bridge.pending_count == 0


@pytest.mark.asyncio
async def test_close_rejects_everything():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    task = asyncio.create_task(bridge.send("getPages"))
    await wait_for_sent(connection)
    await bridge.close()

    with pytest.raises(PluginDisconnectedError, match="Plugin bridge closed"):
        await task
    assert bridge.status().model_dump(by_alias=True) == {
        "connected": False,
        "port": None,
        "pendingRequests": 0,
    }


@pytest.mark.asyncio
async def test_loopback_round_trip(document):
    async with PluginBridge(port=0, request_timeout=5) as bridge:
        client = SandboxClient(document, f"ws://127.0.0.1:{bridge.port}")
        client_task = asyncio.create_task(client.run())
        try:
            assert await bridge.wait_until_connected(timeout=5)
            assert bridge.status().connected

            pages, detail = await asyncio.gather(
                bridge.send("getPages"),
                bridge.send("getNodeDetail", {"nodeId": "1:2"}),
            )
            assert [page["id"] for page in pages] == ["0:1", "0:2"]
            assert detail["isComponent"] is True

            with pytest.raises(NodeNotFoundError):
                await bridge.send("getNodeDetail", {"nodeId": "404:1"})
        finally:
            await client.stop()
            await asyncio.wait_for(client_task, timeout=5)


@pytest.mark.asyncio
async def test_unserializable_params_leave_nothing_pending():
    bridge = PluginBridge()
    connection = FakeConnection()
    bridge._on_connection_open(connection)

    with pytest.raises(InvalidParamsError):
        await bridge.send("getChildren", {"nodeId": object()})

    assert bridge.pending_count == 0
    assert connection.sent == []
