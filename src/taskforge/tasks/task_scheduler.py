# src/taskforge/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

Drains the task queue one invocation at a time:
- pops the next invocation (sentinels are skipped),
- pushes a placeholder so run() calls made by the task land right after it,
- runs the body and waits for completion (return value, exception,
  completion handle or awaitable),
- records success/failure and reports failures to the error hook.

The scheduler never stops on failure by itself. Whether to go on is up to the
error hook (it may clear the queue).
"""

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType
from typing import Any

from ..core.errors import (
    GenericTaskFailure,
    RequirementUnmet,
    ResolutionFailure,
    SchedulerError,
)
from ..core.ports import DoneHook, ErrorHook
from .task_models import AsyncSlot, CompletionHandle, Invocation, RunContext
from .task_queue import TaskQueue
from .task_registry import TaskRegistry, as_name_list

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ErrorContext:
    """Passed to the error hook. task_name is None for rejected run() batches."""

    task_name: str | None
    invocation_name: str | None = None


@dataclass(slots=True)
class SchedulerOptions:
    on_error: ErrorHook | None = None
    on_done: DoneHook | None = None


def _flatten_names(names: tuple[str | Sequence[str], ...]) -> list[str]:
    # run("a", "b") and run(["a", "b"]) are equivalent.
    if len(names) == 1:
        return as_name_list(names[0])
    return [str(n) for n in names]


def _current_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Scheduler:
    """Registry + queue + drain loop. One instance owns all of its state."""

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.registry = TaskRegistry(enqueue=self.run)
        self.queue = TaskQueue()
        self.current: RunContext | None = None
        self.options = SchedulerOptions()

        self._loop = loop
        self._active_loop: asyncio.AbstractEventLoop | None = None
        self._running = False
        self._defer_completion = False
        self._run_done: DoneHook | None = None
        self._run_crashed: Callable[[BaseException], None] | None = None
        self._success: dict[str, bool] = {}

    # ---- State ----

    @property
    def running(self) -> bool:
        return self._running

    @property
    def success(self) -> Mapping[str, bool]:
        """Invocation string -> last recorded outcome."""
        return MappingProxyType(self._success)

    def set_options(self, **overrides: Any) -> None:
        for key, value in overrides.items():
            if not hasattr(self.options, key):
                raise TypeError(f"Unknown scheduler option: {key!r}")
            setattr(self.options, key, value)

    # ---- Queue ----

    def run(self, *names: str | Sequence[str]) -> Scheduler:
        """
        Resolve and enqueue invocation strings.

        All-or-nothing: if any name fails to resolve, nothing is enqueued.
        """
        resolved, missing = self.registry.resolve_all(_flatten_names(names))
        if missing:
            self._reject(ResolutionFailure(missing[0]))
            return self
        self.queue.push(resolved)
        return self

    def _reject(self, err: Exception) -> None:
        if self._running or self.options.on_error is None:
            raise err
        self.options.on_error(ErrorContext(task_name=None), err)

    def mark(self) -> Scheduler:
        self.queue.mark()
        return self

    def clear_queue(self, *, until_marker: bool = False) -> Scheduler:
        self.queue.clear(until_marker=until_marker)
        return self

    def requires(self, *names: str | Sequence[str]) -> None:
        for name in _flatten_names(names):
            success = self._success.get(name)
            if not success:
                raise RequirementUnmet(name, failed=success is False)

    # ---- Drain loop ----

    def start(self, *, defer_completion: bool = False, on_done: DoneHook | None = None) -> bool:
        """
        Begin draining the queue. Returns False (and does nothing) if already running.

        With defer_completion=True each next task starts on a fresh event loop
        tick; this needs a running loop.
        """
        return self._start(defer_completion, on_done, None)

    async def drain(self, *, defer_completion: bool = False) -> None:
        """
        Start on the running loop and wait until the queue is empty.

        If the drain loop itself crashes, the run is abandoned and the error is
        raised here.
        """
        finished: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def _done() -> None:
            if not finished.done():
                finished.set_result(None)

        def _crashed(exc: BaseException) -> None:
            if not finished.done():
                finished.set_exception(exc)

        if not self._start(defer_completion, _done, _crashed):
            raise SchedulerError("Scheduler is already running.")
        await finished

    def _start(
            self,
            defer_completion: bool,
            on_done: DoneHook | None,
            on_crash: Callable[[BaseException], None] | None,
    ) -> bool:
        if self._running:
            return False

        loop = self._loop or _current_loop()
        if defer_completion and loop is None:
            raise SchedulerError("defer_completion requires a running event loop.")

        self._active_loop = loop
        self._defer_completion = defer_completion
        self._run_done = on_done
        self._run_crashed = on_crash
        self._running = True
        logger.debug("Scheduler started (queued=%d)", len(self.queue.invocations()))
        try:
            self._drain()
        except BaseException:
            self._abandon_run()
            raise
        return True

    def _step(self, fn: Callable[..., None], *args: Any) -> None:
        """Drain step scheduled on the loop; a crash ends the run instead of stalling it."""
        try:
            fn(*args)
        except BaseException as exc:
            on_crash = self._abandon_run()
            if on_crash is not None:
                on_crash(exc)
            if on_crash is None or isinstance(exc, (KeyboardInterrupt, SystemExit)):
                raise

    def _abandon_run(self) -> Callable[[BaseException], None] | None:
        logger.error(
            "Scheduler stopped while draining; %d queued invocation(s) left",
            len(self.queue.invocations()),
        )
        self._running = False
        self.current = None
        self._run_done = None
        on_crash, self._run_crashed = self._run_crashed, None
        return on_crash

    def _drain(self) -> None:
        while True:
            inv = self.queue.pop_invocation()
            if inv is None:
                self._finish()
                return

            # Nested run() calls from this task go in front of this placeholder.
            self.queue.push_placeholder()
            slot = AsyncSlot()
            ctx = RunContext(
                invocation_name=inv.raw_name,
                task_name=inv.task_name,
                args=list(inv.args),
                flags=inv.flags,
                scheduler=self,
                async_slot=slot,
            )
            slot.factory = partial(self._make_handle, ctx)

            if not self._execute(inv, ctx):
                # Resumed later through the completion handle.
                return

            if self._defer_completion:
                self._active_loop.call_soon(self._step, self._drain)
                return

    def _execute(self, inv: Invocation, ctx: RunContext) -> bool:
        """Run one body. Returns True if it completed synchronously."""
        self.current = ctx
        try:
            result = inv.task.body(ctx, *inv.args)
        except Exception as exc:
            if ctx.async_handle is not None:
                ctx.async_handle.discard()
            self._complete(ctx, exc)
            return True

        if inspect.isawaitable(result):
            try:
                handle = ctx.request_async()
            except SchedulerError as exc:
                if inspect.iscoroutine(result):
                    result.close()
                self._complete(ctx, exc)
                return True
            self._settle_when_done(result, handle)
            return False

        if ctx.async_handle is not None:
            return False

        self._complete(ctx, result)
        return True

    def _make_handle(self, ctx: RunContext) -> CompletionHandle:
        loop = self._active_loop
        if loop is None:
            raise SchedulerError("Asynchronous completion requires a running event loop.")

        def _on_complete(result: Any) -> None:
            # Never resume inside the caller's stack; the handle may also be called from another thread.
            loop.call_soon_threadsafe(self._step, self._resume, ctx, result)

        return CompletionHandle(_on_complete)

    def _settle_when_done(self, awaitable: Any, handle: CompletionHandle) -> None:
        future = asyncio.ensure_future(awaitable, loop=self._active_loop)

        def _settle(fut: asyncio.Future[Any]) -> None:
            if fut.cancelled():
                handle(asyncio.CancelledError())
            elif fut.exception() is not None:
                handle(fut.exception())
            else:
                handle(fut.result())

        future.add_done_callback(_settle)

    def _resume(self, ctx: RunContext, result: Any) -> None:
        self._complete(ctx, result)
        if self._defer_completion:
            self._active_loop.call_soon(self._step, self._drain)
        else:
            self._drain()

    def _complete(self, ctx: RunContext, result: Any) -> None:
        err: BaseException | None = None
        if result is False:
            err = GenericTaskFailure(ctx.invocation_name)
        elif isinstance(result, BaseException):
            err = result

        success = err is None
        self.current = None
        self._success[ctx.invocation_name] = success

        if success:
            logger.debug('Task "%s" succeeded', ctx.invocation_name)
            return

        logger.debug('Task "%s" failed: %s', ctx.invocation_name, err)
        if self.options.on_error is not None:
            try:
                self.options.on_error(
                    ErrorContext(task_name=ctx.task_name, invocation_name=ctx.invocation_name),
                    err,
                )
            except Exception:
                # The queue keeps draining whatever the hook does.
                logger.exception('Error hook raised while handling "%s"', ctx.invocation_name)

    def _finish(self) -> None:
        self._running = False
        self.current = None
        self._run_crashed = None
        logger.debug("Scheduler idle; queue drained.")

        done, self._run_done = self._run_done, None
        for hook in (self.options.on_done, done):
            if hook is None:
                continue
            try:
                hook()
            except Exception:
                logger.exception("Done hook raised")
