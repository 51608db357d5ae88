# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "cachegate[fastapi]",
#     "httpx",
# ]
#
# [tool.uv.sources]
# cachegate = { path = "../", editable = true }
# ///


import asyncio
import time

import httpx
from fastapi import FastAPI, Request

from cachegate import HeaderValidationError, Resource
from cachegate.fastapi import cache, conditional, header_validation_exception_handler

app = FastAPI()
app.add_exception_handler(HeaderValidationError, header_validation_exception_handler)

items = {"1": {"name": "apple", "version": 1, "updated_at": int(time.time())}}


def resolve_item(request: Request):
    item = items.get(request.path_params["item_id"])
    if item is None:
        return None
    return Resource(etag=f"item-{item['version']}", last_modified=item["updated_at"])


@app.get("/items/{item_id}", dependencies=[conditional(resolve_item, strict=True), cache(max_age=60, private=True)])
async def read_item(item_id: str):
    return items[item_id]


@app.put("/items/{item_id}", dependencies=[conditional(resolve_item)])
async def update_item(item_id: str, name: str):
    item = items[item_id]
    item.update(name=name, version=item["version"] + 1, updated_at=int(time.time()))
    return item


async def main():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.get("/items/1")
        etag = response.headers["etag"]
        print(f"GET                          -> {response.status_code} etag={etag}")

        response = await client.get("/items/1", headers={"If-None-Match": etag})
        print(f"GET If-None-Match            -> {response.status_code}")

        response = await client.put("/items/1", params={"name": "pear"}, headers={"If-Match": etag})
        print(f"PUT If-Match                 -> {response.status_code}")

        response = await client.put("/items/1", params={"name": "plum"}, headers={"If-Match": etag})
        print(f"PUT If-Match (stale etag)    -> {response.status_code}")

        response = await client.get("/items/1", headers={"If-Modified-Since": "yesterday"})
        print(f"GET malformed header         -> {response.status_code} {response.json()}")


if __name__ == "__main__":
    asyncio.run(main())
