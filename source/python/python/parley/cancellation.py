"""
Cooperative cancellation for a conversation turn.

A single CancellationToken is threaded through every operation of a turn. Once
cancelled, the next suspension point (a polling sleep, a remote call, the tool
barrier) raises OperationCancelledError. Task cancellation through
asyncio.CancelledError keeps working as usual and is never retried.
"""

import asyncio
import inspect
from typing import Optional

from .errors import OperationCancelledError


class CancellationToken:
  def __init__(self):
    self._event = asyncio.Event()
    self.reason: Optional[str] = None

  @property
  def cancelled(self) -> bool:
    return self._event.is_set()

  def cancel(self, reason: Optional[str] = None):
    if not self._event.is_set():
      self.reason = reason
      self._event.set()

  def raise_if_cancelled(self, operation: Optional[str] = None):
    if self._event.is_set():
      raise OperationCancelledError(operation or self.reason)

  async def wait(self):
    await self._event.wait()


async def sleep(delay: float, token: Optional[CancellationToken] = None):
  """
  Sleep for ``delay`` seconds, waking up early if ``token`` is cancelled.

  Raises:
    OperationCancelledError: If the token is, or becomes, cancelled.
  """
  if token is None:
    await asyncio.sleep(delay)
    return

  token.raise_if_cancelled("sleep")
  waiter = asyncio.ensure_future(token.wait())
  try:
    await asyncio.wait({waiter}, timeout=delay)
  finally:
    if not waiter.done():
      waiter.cancel()
  token.raise_if_cancelled("sleep")


async def guard(awaitable, token: Optional[CancellationToken] = None, operation: Optional[str] = None):
  """
  Await ``awaitable`` unless ``token`` gets cancelled first.

  The pending awaitable is cancelled when the token wins the race.
  """
  if token is None:
    return await awaitable

  if token.cancelled:
    if inspect.iscoroutine(awaitable):
      awaitable.close()
    token.raise_if_cancelled(operation)
  task = asyncio.ensure_future(awaitable)
  waiter = asyncio.ensure_future(token.wait())
  try:
    await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
  except asyncio.CancelledError:
    task.cancel()
    raise
  finally:
    if not waiter.done():
      waiter.cancel()

  if not task.done():
    task.cancel()
    raise OperationCancelledError(operation or token.reason)
  return task.result()
