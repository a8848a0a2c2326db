"""
Script Loader

Maps an identifier to a URI, fetches the unit through the selected
transport and executes it in the registry scope.

LOAD CONTRACT:
==============
- Blocking form returns True (executed, `include` fired) or False
  (`includeError` fired with the status attached)
- Callback form schedules one task on the running event loop and returns
  it immediately; exactly one of on_success / on_error runs when the
  request settles
- The transport is acquired BEFORE anything is scheduled, so an
  unavailable transport raises to the caller and no event fires
- Exceptions raised by the executed code are not caught here
"""

from __future__ import annotations
from typing import Any, Callable, Coroutine, Dict, Optional, Set
import asyncio
import linecache
import logging

from .contracts.base import Error, ErrorCode, Result
from .contracts.events import LifecycleEvent, load_payload, with_failure
from .events import EventBus
from .transport import Transport, TransportChain, TransportResponse

logger = logging.getLogger(__name__)

Continuation = Callable[[], Any]


# =============================================================================
# EXECUTION
# =============================================================================

def scope_globals(scope: Any) -> Dict[str, Any]:
    """The globals dict code runs against for a given scope object."""
    if isinstance(scope, dict):
        return scope
    return vars(scope)


def _attributed_code(source: str, uri: str):
    code = compile(source, uri, 'exec')
    linecache.cache[uri] = (len(source), None, source.splitlines(True), uri)
    return code


def execute_script(source: str, uri: str, globals_: Dict[str, Any]) -> None:
    """
    Run fetched source in the given globals.

    Preferred path compiles under the URI as filename and publishes the
    source to linecache so tracebacks show the remote lines. A URI that
    cannot serve as a filename (embedded NUL, non-text) makes that step
    fail, and the text is then evaluated directly under "<string>";
    callers cannot tell which ran. Syntax errors in the source are not
    retried.
    """
    try:
        code = _attributed_code(source, uri)
    except SyntaxError:
        raise
    except (ValueError, TypeError) as exc:
        logger.debug("Evaluating %s directly: %s", uri, exc)
        exec(source, globals_)
        return
    exec(code, globals_)


# =============================================================================
# TASKS
# =============================================================================

class PendingTasks:
    """Keeps scheduled tasks referenced until they finish."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise RuntimeError(
                "Asynchronous loading requires a running asyncio event loop"
            ) from None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def __len__(self) -> int:
        return len(self._tasks)


# =============================================================================
# LOADER
# =============================================================================

class ScriptLoader:
    """Fetches and executes code units keyed by identifier."""

    def __init__(
        self,
        uri_for: Callable[[str], str],
        transports: TransportChain,
        bus: EventBus,
        globals_: Dict[str, Any],
        tasks: Optional[PendingTasks] = None
    ):
        self._uri_for = uri_for
        self._transports = transports
        self._bus = bus
        self._globals = globals_
        self._tasks = tasks or PendingTasks()

    @property
    def tasks(self) -> PendingTasks:
        return self._tasks

    def load(
        self,
        identifier: str,
        on_success: Optional[Continuation] = None,
        on_error: Optional[Continuation] = None
    ):
        """
        Load `identifier`.

        Without `on_success` the call blocks and returns a bool. With it,
        the returned asyncio.Task settles the load in the background.
        """
        uri = self._uri_for(identifier)
        transport = self._transports.acquire()

        if on_success is None:
            response = transport.get(uri)
            return self._settle(identifier, uri, response, is_async=False)

        return self._tasks.schedule(
            self._load_with_continuations(identifier, uri, transport, on_success, on_error)
        )

    async def load_async(self, identifier: str) -> bool:
        """Coroutine form: resolves to True on success, False on failure."""
        uri = self._uri_for(identifier)
        transport = self._transports.acquire()
        response = await transport.get_async(uri)
        return self._settle(identifier, uri, response, is_async=True)

    async def _load_with_continuations(
        self,
        identifier: str,
        uri: str,
        transport: Transport,
        on_success: Continuation,
        on_error: Optional[Continuation]
    ) -> bool:
        response = await transport.get_async(uri)
        if self._settle(identifier, uri, response, is_async=True, callback=on_success):
            on_success()
            return True
        if on_error is not None:
            on_error()
        return False

    def _evaluate(self, identifier: str, response: TransportResponse) -> Result:
        if response.ok:
            return Result.success(response.text)
        return Result.failure(Error(
            code=ErrorCode.HTTP_FAILURE,
            message=f"Could not include {identifier!r} from {response.uri}"
        ).with_context('status', str(response.status)))

    def _settle(
        self,
        identifier: str,
        uri: str,
        response: TransportResponse,
        is_async: bool,
        callback: Optional[Continuation] = None
    ) -> bool:
        payload = load_payload(identifier, uri, is_async, callback)
        result = self._evaluate(identifier, response)

        if result.is_failure:
            logger.warning(
                "Failed to include %s from %s (status %s)",
                identifier, uri, response.status
            )
            self._bus.dispatch(
                LifecycleEvent.INCLUDE_ERROR,
                with_failure(payload, response.status, result.error)
            )
            return False

        execute_script(result.value, uri, self._globals)
        logger.info("Included %s from %s", identifier, uri)
        self._bus.dispatch(LifecycleEvent.INCLUDE, payload)
        return True
