"""
Example demonstrating requestkit against an echo server.

The server repeats whatever is in the request body, so no real endpoint is
needed. A client session is attached to the context for the builder to use.
"""

import asyncio
from dataclasses import dataclass

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from requestkit import Request, configure_logging, use_client


@dataclass
class Payload:
    message: str


async def echo(request: web.Request) -> web.Response:
    return web.Response(status=200, body=await request.read())


async def main():
    configure_logging("DEBUG")

    app = web.Application()
    app.router.add_post("/", echo)

    async with TestServer(app) as server:
        url = str(server.make_url("/"))

        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=5)) as session:
            with use_client(session):
                # Raw response: the caller reads and releases the body.
                resp = await (
                    Request()
                    .set_timeout(10)  # applies to this request only
                    .set_basic_auth("username", "password")
                    .set_json_body({"message": "This is an example."})
                    .send("POST", url)
                )
                async with resp:
                    data = await resp.read()
                print(f"Status: {resp.status}")
                print(f"Body: {data.decode()}")

                # Decoded result: body read, released and decoded for you.
                res = await (
                    Request()
                    .set_json_body({"message": "This is an example."})
                    .wrap_for_json_result(lambda doc: Payload(**doc))
                    .send("POST", url)
                )
                print(f"Status: {res.status}")
                print(f"Body: {res.raw_data.decode()}")
                print(f"Message: {res.data.message}")


if __name__ == "__main__":
    asyncio.run(main())
