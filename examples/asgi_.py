# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "cachegate",
#     "httpx",
# ]
#
# [tool.uv.sources]
# cachegate = { path = "../", editable = true }
# ///


import asyncio
import logging
from datetime import datetime, timezone

import httpx

from cachegate import Resource
from cachegate.asgi import ConditionalRequestMiddleware

logging.basicConfig(level=logging.INFO)

REPORT = Resource(etag="report-2024-q1", last_modified=datetime(2024, 4, 1, tzinfo=timezone.utc))


async def report_app(scope, receive, send):
    await send({"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"text/plain")]})
    await send({"type": "http.response.body", "body": b"quarterly report"})


async def resolve(scope):
    return REPORT if scope["path"] == "/report" else None


app = ConditionalRequestMiddleware(app=report_app, resolver=resolve)


async def main():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        for headers in (
            {},
            {"If-None-Match": '"report-2024-q1"'},
            {"If-None-Match": '"report-2024-q1"', "Cache-Control": "max-age=0"},
            {"If-Unmodified-Since": "Sun, 31 Mar 2024 00:00:00 GMT"},
        ):
            response = await client.get("/report", headers=headers)
            print(f"{headers} -> {response.status_code}")


if __name__ == "__main__":
    asyncio.run(main())
