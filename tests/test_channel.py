from __future__ import annotations

import asyncio

import pytest

from verses.channel import ChannelClosed, EventChannel


def test_fifo_order():
    async def go():
        ch = EventChannel(3)
        for i in range(3):
            await ch.send(i)
        return [await ch.recv() for _ in range(3)]

    assert asyncio.run(go()) == [0, 1, 2]


def test_send_blocks_when_full():
    async def go():
        ch = EventChannel(1)
        await ch.send("a")
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(ch.send("b"), timeout=0.05)
        assert await ch.recv() == "a"

    asyncio.run(go())


def test_close_wakes_waiting_receiver():
    async def go():
        ch = EventChannel(2)
        waiter = asyncio.create_task(ch.recv())
        await asyncio.sleep(0)
        ch.close()
        with pytest.raises(ChannelClosed):
            await asyncio.wait_for(waiter, timeout=1)

    asyncio.run(go())


def test_close_drains_full_channel_first():
    async def go():
        ch = EventChannel(2)
        await ch.send(1)
        await ch.send(2)
        ch.close()
        got = [await ch.recv(), await ch.recv()]
        with pytest.raises(ChannelClosed):
            await ch.recv()
        return got

    assert asyncio.run(go()) == [1, 2]


def test_send_after_close_raises():
    async def go():
        ch = EventChannel(2)
        ch.close()
        ch.close()
        with pytest.raises(ChannelClosed):
            await ch.send(1)

    asyncio.run(go())


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        EventChannel(0)
