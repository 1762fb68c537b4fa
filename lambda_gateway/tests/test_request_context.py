import asyncio
import re

import pytest

from lambda_gateway.core.request_context import (
    clear_request_id,
    generate_correlation_id,
    get_request_id,
    set_request_id,
)

ID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def test_correlation_id_format():
    assert ID_PATTERN.match(generate_correlation_id())


def test_correlation_ids_do_not_repeat():
    ids = {generate_correlation_id() for _ in range(10000)}
    assert len(ids) == 10000


def test_set_and_clear():
    set_request_id("abc")
    assert get_request_id() == "abc"
    clear_request_id()
    assert get_request_id() is None


@pytest.mark.asyncio
async def test_request_id_is_task_local():
    async def serve(request_id):
        set_request_id(request_id)
        await asyncio.sleep(0)
        return get_request_id()

    assert await asyncio.gather(serve("one"), serve("two")) == ["one", "two"]
    assert get_request_id() is None
