"""Tests for the streamed chat request against a fake Ollama endpoint."""

import asyncio
import json

import httpx
import pytest

from tama.core.cancellation import CancelToken
from tama.core.dispatcher import StreamingDispatcher
from tests.helpers import CHAT_URL, BrokenStream, HangingStream, drain, ndjson

HISTORY = [
    {'role': 'user', 'content': 'Hi'},
]


def make_dispatcher(handler):
    q: asyncio.Queue = asyncio.Queue()
    return q, StreamingDispatcher(q, CHAT_URL, transport=httpx.MockTransport(handler))


async def test_request_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['method'] = request.method
        seen['url'] = str(request.url)
        seen['body'] = json.loads(request.content)
        return httpx.Response(200, content=ndjson("ok"))

    q, dispatcher = make_dispatcher(handler)
    await dispatcher.run(1, 0, HISTORY, "llama3:8b", CancelToken(1))

    assert seen['method'] == "POST"
    assert seen['url'] == CHAT_URL
    assert seen['body'] == {"model": "llama3:8b", "messages": HISTORY, "stream": True}


async def test_partials_carry_accumulated_text_then_complete():
    q, dispatcher = make_dispatcher(
        lambda request: httpx.Response(200, content=ndjson("He", "llo", " world  "))
    )
    await dispatcher.run(7, 2, HISTORY, "m", CancelToken(7))
    events = drain(q)

    assert [e['type'] for e in events] == ["partial", "partial", "partial", "complete"]
    assert [e['text'] for e in events[:3]] == ["He", "Hello", "Hello world  "]
    assert all(e['dispatch_id'] == 7 and e['target'] == 2 for e in events)

    done = events[-1]
    assert done['text'] == "Hello world"
    assert not done['cancelled']
    assert not done['degraded']
    assert done['duration'].total_seconds() >= 0


async def test_empty_fragments_emit_no_partials():
    q, dispatcher = make_dispatcher(
        lambda request: httpx.Response(200, content=ndjson("", "a", "", "b"))
    )
    await dispatcher.run(1, 0, HISTORY, "m", CancelToken(1))
    events = drain(q)
    assert [e['text'] for e in events if e['type'] == 'partial'] == ["a", "ab"]


async def test_non_success_status_is_a_failure():
    q, dispatcher = make_dispatcher(
        lambda request: httpx.Response(500, content=b"model exploded")
    )
    await dispatcher.run(1, 0, HISTORY, "m", CancelToken(1))
    events = drain(q)

    assert len(events) == 1
    assert events[0]['type'] == 'failure'
    assert events[0]['message'] == "request failed with status 500: model exploded"


async def test_unreachable_endpoint_is_a_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    q, dispatcher = make_dispatcher(handler)
    await dispatcher.run(1, 0, HISTORY, "m", CancelToken(1))
    events = drain(q)

    assert [e['type'] for e in events] == ['failure']
    assert "connection refused" in events[0]['message']


async def test_malformed_chunk_ends_stream_degraded():
    body = ndjson("good", done=False) + b"{not json\n" + ndjson(" never")
    q, dispatcher = make_dispatcher(lambda request: httpx.Response(200, content=body))
    await dispatcher.run(1, 0, HISTORY, "m", CancelToken(1))
    events = drain(q)

    assert [e['type'] for e in events] == ["partial", "complete"]
    assert events[-1]['text'] == "good"
    assert events[-1]['degraded']


async def test_cancel_stops_hanging_stream_with_complete():
    stream = HangingStream(ndjson("partial ans", done=False))
    q, dispatcher = make_dispatcher(lambda request: httpx.Response(200, stream=stream))
    token = CancelToken(3)

    task = asyncio.create_task(dispatcher.run(3, 0, HISTORY, "m", token))
    first = await asyncio.wait_for(q.get(), timeout=1)
    assert first == {'type': 'partial', 'dispatch_id': 3, 'target': 0, 'text': 'partial ans'}

    token.cancel()
    await asyncio.wait_for(task, timeout=1)
    events = drain(q)

    assert [e['type'] for e in events] == ['complete']
    assert events[0]['cancelled']
    assert events[0]['text'] == "partial ans"



async def test_cancel_while_waiting_for_headers():
    async def handler(request):
        await asyncio.Event().wait()

    q, dispatcher = make_dispatcher(handler)
    token = CancelToken(4)
    task = asyncio.create_task(dispatcher.run(4, 0, HISTORY, "m", token))
    await asyncio.sleep(0.05)
    assert not task.done()

    token.cancel()
    await asyncio.wait_for(task, timeout=1)
    events = drain(q)

    assert [e['type'] for e in events] == ["complete"]
    assert events[0]['cancelled']
    assert events[0]['text'] == ""


async def test_connection_reset_mid_stream_keeps_received_text():
    stream = BrokenStream(ndjson("partial text", done=False))
    q, dispatcher = make_dispatcher(lambda request: httpx.Response(200, stream=stream))
    await dispatcher.run(1, 0, HISTORY, "m", CancelToken(1))
    events = drain(q)

    assert [(e['type'], e['text']) for e in events] == [
        ("partial", "partial text"), ("complete", "partial text"),
    ]
    assert events[-1]['degraded']
    assert not events[-1]['cancelled']


async def test_connection_reset_before_any_text_still_completes():
    stream = BrokenStream(b"")
    q, dispatcher = make_dispatcher(lambda request: httpx.Response(200, stream=stream))
    await dispatcher.run(1, 0, HISTORY, "m", CancelToken(1))
    events = drain(q)

    assert [e['type'] for e in events] == ["complete"]
    assert events[0]['text'] == ""
    assert events[0]['degraded']

@pytest.mark.parametrize("fragments", [("x",), ("a", "b", "c"), ("  lead", "ing", "\n")])
async def test_complete_text_is_trimmed_last_partial(fragments):
    q, dispatcher = make_dispatcher(lambda request: httpx.Response(200, content=ndjson(*fragments)))
    await dispatcher.run(1, 0, HISTORY, "m", CancelToken(1))
    events = drain(q)
    partials = [e['text'] for e in events if e['type'] == 'partial']
    assert events[-1]['text'] == partials[-1].strip()
