import json

import httpx
import pytest

from app.client.sse import HttpDiagramEventSource, SseMessage, iter_sse_messages


async def _lines(*lines: str):
    for line in lines:
        yield line


async def _collect(iterator) -> list[SseMessage]:
    return [message async for message in iterator]


@pytest.mark.asyncio
async def test_parser_groups_data_lines_until_blank_line() -> None:
    messages = await _collect(
        iter_sse_messages(_lines("data: first", "data: second", "", "data:{}", ""))
    )

    assert messages == [SseMessage(data="first\nsecond"), SseMessage(data="{}")]


@pytest.mark.asyncio
async def test_parser_reports_comments_separately() -> None:
    messages = await _collect(iter_sse_messages(_lines(": ping", "", "data: x", "")))

    assert messages[0].is_comment
    assert messages[0].comment == "ping"
    assert messages[1] == SseMessage(data="x")


@pytest.mark.asyncio
async def test_parser_tracks_event_name_and_drops_unterminated_message() -> None:
    messages = await _collect(
        iter_sse_messages(_lines("event: notice", "id: 7", "data: hello", "", "data: partial"))
    )

    assert messages == [SseMessage(data="hello", event="notice")]


@pytest.mark.asyncio
async def test_http_event_source_reads_stream() -> None:
    body = (
        f"data: {json.dumps({'type': 'connected', 'id': 'r 1'})}\n\n"
        ": ping\n\n"
        f"data: {json.dumps({'type': 'updated', 'id': 'r 1'})}\n\n"
    )
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.raw_path.decode())
        return httpx.Response(
            200, content=body.encode(), headers={"Content-Type": "text/event-stream"}
        )

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://chartdb.test"
    ) as http:
        source = HttpDiagramEventSource(http)
        messages = await _collect(source.messages("r 1"))

    assert requested == ["/api/diagrams/r%201/events"]
    assert [message.is_comment for message in messages] == [False, True, False]
    assert json.loads(messages[2].data) == {"type": "updated", "id": "r 1"}


@pytest.mark.asyncio
async def test_http_event_source_raises_on_error_status() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(503))

    async with httpx.AsyncClient(transport=transport, base_url="http://chartdb.test") as http:
        with pytest.raises(httpx.HTTPStatusError):
            await _collect(HttpDiagramEventSource(http).messages("r1"))
