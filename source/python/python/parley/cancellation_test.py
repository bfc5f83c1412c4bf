import asyncio
import pytest

from .cancellation import CancellationToken, guard, sleep
from .errors import OperationCancelledError


class TestCancellationToken:
  def test_cancel_keeps_the_first_reason(self):
    token = CancellationToken()
    token.cancel("first")
    token.cancel("second")

    assert token.cancelled
    with pytest.raises(OperationCancelledError, match="first"):
      token.raise_if_cancelled()

  @pytest.mark.asyncio
  async def test_sleep_wakes_up_on_cancel(self):
    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.01, token.cancel)

    with pytest.raises(OperationCancelledError):
      await sleep(10, token)

  @pytest.mark.asyncio
  async def test_sleep_without_token(self):
    await sleep(0)

  @pytest.mark.asyncio
  async def test_guard_returns_the_result(self):
    async def answer():
      return 42

    assert await guard(answer(), CancellationToken()) == 42

  @pytest.mark.asyncio
  async def test_guard_cancels_the_pending_operation(self):
    token = CancellationToken()
    started = asyncio.Event()
    cancelled = []

    async def forever():
      started.set()
      try:
        await asyncio.sleep(10)
      except asyncio.CancelledError:
        cancelled.append(True)
        raise

    async def cancel_when_started():
      await started.wait()
      token.cancel("stop")

    asyncio.ensure_future(cancel_when_started())
    with pytest.raises(OperationCancelledError):
      await guard(forever(), token, "wait forever")

    await asyncio.sleep(0)
    assert cancelled == [True]
