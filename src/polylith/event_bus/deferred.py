"""Externally settleable futures."""

import asyncio
from typing import Any


class Deferred:
    """A pending result created by one party and settled by another.

    The wrapped future is settled at most once; resolving or rejecting an
    already settled deferred is a no-op.

    Example:
        ```python
        deferred = Deferred()
        loop.call_later(1, deferred.resolve, "done")
        value = await deferred.future
        ```
    """

    def __init__(self) -> None:
        """Create the deferred on the running event loop.

        Raises:
            RuntimeError: If no event loop is running
        """
        self.future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        """Whether the deferred has been settled."""
        return self.future.done()

    def resolve(self, value: Any = None) -> None:
        """Fulfill the future with ``value``."""
        if not self.future.done():
            self.future.set_result(value)

    def reject(self, exc: BaseException) -> None:
        """Fail the future with ``exc``.

        The failure only surfaces to whoever awaits the future; a rejection
        nobody waits for is not reported by the event loop.
        """
        if not self.future.done():
            self.future.set_exception(exc)
            # Marks the exception as retrieved
            self.future.exception()

    def cancel(self) -> None:
        """Cancel the future."""
        self.future.cancel()
