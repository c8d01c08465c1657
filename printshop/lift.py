"""
Lift — helpers for moving between raising code and Results.

Boundary calls are lifted with `catching_async` and unwrapped back into
the exception-based domain API with `run_or_raise`.
"""

from __future__ import annotations

from kungfu import LazyCoroResult, Ok, Error

from combinators.lift import catching_async


async def run_or_raise[T, E: Exception](computation: LazyCoroResult[T, E]) -> T:
    """
    Await a computation and unwrap it, raising the error on failure.

        session = await run_or_raise(
            catching_async(lambda: gateway.update(...), on_error=to_persistence_error)
        )
    """
    match await computation:
        case Ok(value):
            return value
        case Error(error):
            raise error


__all__ = (
    "catching_async",
    "run_or_raise",
)
