"""Request channel: cancellable backend calls that settle into ApiResult values.

Failures never escape as exceptions. A call resolves to an ``ApiResult``
(success, domain error or transport error), or to ``None`` when it was aborted
because a newer call superseded it or its cancellation token fired. Aborted
calls never invoke callbacks.
"""

import asyncio
import itertools
from contextlib import suppress
from typing import Any, Callable, Optional, Protocol

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .config import settings as default_settings
from .errors import ErrorKind
from .logger import log_exception, logger


class CancellationToken:
    """Explicit cancel signal owned by whoever issues a request."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class ApiResult(BaseModel):
    """Settled outcome of a backend call."""

    model_config = {"arbitrary_types_allowed": True}

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Any) -> "ApiResult":
        return cls(success=True, data=data)

    @classmethod
    def domain_error(cls, message: str) -> "ApiResult":
        return cls(success=False, error=message, error_kind=ErrorKind.DOMAIN)

    @classmethod
    def transport_error(cls, message: str) -> "ApiResult":
        return cls(success=False, error=message, error_kind=ErrorKind.TRANSPORT)


class ToastSink(Protocol):
    """Notification UI the channel reports to. Implemented outside the core."""

    def loading(self, message: str) -> str: ...

    def success(self, message: str, toast_id: Optional[str] = None) -> None: ...

    def error(self, message: str, toast_id: Optional[str] = None) -> None: ...

    def dismiss(self, toast_id: str) -> None: ...


class LoggingToastSink:
    """Default sink: toasts are written to the log."""

    def __init__(self):
        self._ids = itertools.count(1)

    def loading(self, message: str) -> str:
        toast_id = f"toast-{next(self._ids)}"
        logger.info(f"[{toast_id}] {message}")
        return toast_id

    def success(self, message: str, toast_id: Optional[str] = None) -> None:
        logger.info(f"[{toast_id or '-'}] {message}")

    def error(self, message: str, toast_id: Optional[str] = None) -> None:
        logger.warning(f"[{toast_id or '-'}] {message}")

    def dismiss(self, toast_id: str) -> None:
        logger.debug(f"[{toast_id}] dismissed")


@log_exception("Toast sink failed to show loading toast {message!r}")
def _toast_loading(sink: ToastSink, message: str) -> Optional[str]:
    return sink.loading(message)


@log_exception("Toast sink failed to settle toast {toast_id}")
def _toast_settle(
    sink: ToastSink, result: ApiResult, toast_id: Optional[str], success_msg: Optional[str]
) -> None:
    if result.success:
        if success_msg:
            sink.success(success_msg, toast_id)
        elif toast_id:
            sink.dismiss(toast_id)
    else:
        sink.error(result.error or "Unknown error", toast_id)


@log_exception("Toast sink failed to dismiss toast {toast_id}")
def _toast_dismiss(sink: ToastSink, toast_id: str) -> None:
    sink.dismiss(toast_id)


def describe_transport_error(e: httpx.HTTPError | httpx.InvalidURL) -> str:
    if isinstance(e, httpx.TimeoutException):
        return "Request timed out."
    detail = str(e) or type(e).__name__
    return f"Request failed: {detail}"


class ApiEndpoint:
    """One logical caller of the backend, bound to a method and path.

    Pending calls are tracked on every endpoint (``in_flight``). With
    ``abort_on_unmount`` set, issuing a new call aborts the previous in-flight
    call, and the endpoint is aborted when its ``BackendApi`` is torn down.
    """

    def __init__(
        self,
        api: "BackendApi",
        method: str,
        path: str,
        abort_on_unmount: bool = False,
        response_model: Optional[type[BaseModel]] = None,
    ):
        self.api = api
        self.method = method.upper()
        self.path = path
        self.abort_on_unmount = abort_on_unmount
        self.response_model = response_model
        self._pending: set[CancellationToken] = set()

    def __repr__(self) -> str:
        return f"ApiEndpoint({self.method} {self.path})"

    @property
    def in_flight(self) -> bool:
        return bool(self._pending)

    def abort(self) -> None:
        """Abort every in-flight call of this endpoint. Their outcomes are dropped."""
        for pending in self._pending:
            pending.cancel()
        self._pending.clear()

    async def __call__(
        self,
        *,
        query_params: Optional[dict[str, str]] = None,
        data: Optional[dict[str, Any]] = None,
        token: Optional[CancellationToken] = None,
        toast_loading_message: Optional[str] = None,
        success_msg: Optional[str] = None,
        on_success: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ) -> Optional[ApiResult]:
        """Issue the call and wait for it to settle.

        Args:
            query_params: Query string parameters
            data: Flat JSON body
            token: Caller-owned cancellation token; cancelling it aborts the call
            toast_loading_message: Show a loading toast immediately, replaced on settle
            success_msg: Success toast text; errors get an error toast whenever a
                toast was requested
            on_success: Called with the parsed payload on success
            on_error: Called with the error text on domain or transport error

        Returns:
            The settled ApiResult, or None if the call was aborted
        """
        if token is not None and token.cancelled:
            logger.debug(f"{self!r}: token cancelled before dispatch, call dropped")
            return None

        own_token = CancellationToken()
        if self.abort_on_unmount and self._pending:
            logger.debug(f"{self!r}: aborting previous in-flight call")
            self.abort()
        self._pending.add(own_token)

        toasts = self.api.toasts
        toast_id = None
        if toast_loading_message:
            toast_id = _toast_loading(toasts, toast_loading_message)

        tokens = [own_token] + ([token] if token is not None else [])
        request_task = asyncio.create_task(
            self.api.request(
                self.method,
                self.path,
                query_params=query_params,
                data=data,
                response_model=self.response_model,
            )
        )
        waiters = [asyncio.create_task(t.wait()) for t in tokens]
        try:
            await asyncio.wait([request_task, *waiters], return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            if not request_task.done():
                request_task.cancel()
                with suppress(asyncio.CancelledError):
                    await request_task
            self._pending.discard(own_token)

        if any(t.cancelled for t in tokens) or request_task.cancelled():
            logger.debug(f"{self!r}: call aborted, outcome dropped")
            if toast_id:
                _toast_dismiss(toasts, toast_id)
            return None

        result = request_task.result()
        if toast_id or success_msg:
            _toast_settle(toasts, result, toast_id, success_msg)
        if result.success:
            if on_success is not None:
                on_success(result.data)
        elif on_error is not None:
            on_error(result.error or "")
        return result


class BackendApi:
    """Owns the HTTP client and hands out endpoints bound to it."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        toasts: Optional[ToastSink] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or default_settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.base_url,
            timeout=settings.request_timeout_seconds,
        )
        self.toasts: ToastSink = toasts or LoggingToastSink()
        self._endpoints: list[ApiEndpoint] = []

    async def __aenter__(self) -> "BackendApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def endpoint(
        self,
        method: str,
        path: str,
        abort_on_unmount: bool = False,
        response_model: Optional[type[BaseModel]] = None,
    ) -> ApiEndpoint:
        endpoint = ApiEndpoint(self, method, path, abort_on_unmount, response_model)
        # Only abortable endpoints are torn down with the channel
        if abort_on_unmount:
            self._endpoints.append(endpoint)
        return endpoint

    @property
    def abortable_endpoints(self) -> tuple[ApiEndpoint, ...]:
        return tuple(self._endpoints)

    def abort_all(self) -> None:
        for endpoint in self._endpoints:
            endpoint.abort()

    async def aclose(self) -> None:
        self.abort_all()
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        query_params: Optional[dict[str, str]] = None,
        data: Optional[dict[str, Any]] = None,
        response_model: Optional[type[BaseModel]] = None,
    ) -> ApiResult:
        """Perform one request and classify the response. Never raises httpx errors."""
        logger.debug(f"{method} {path} params={query_params} body={data}")
        try:
            response = await self._client.request(
                method, path, params=query_params, json=data
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            message = describe_transport_error(e)
            logger.warning(f"{method} {path}: {message}")
            return ApiResult.transport_error(message)

        try:
            payload = response.json()
        except ValueError:
            message = f"Invalid response from backend (HTTP {response.status_code})."
            logger.warning(f"{method} {path}: {message}")
            return ApiResult.transport_error(message)

        if isinstance(payload, dict) and "error" in payload:
            logger.debug(f"{method} {path}: backend error {payload['error']!r}")
            return ApiResult.domain_error(str(payload["error"]))

        if response.is_error:
            message = f"Request failed with status {response.status_code}."
            logger.warning(f"{method} {path}: {message}")
            return ApiResult.transport_error(message)

        if response_model is not None:
            try:
                payload = response_model.model_validate(payload)
            except PydanticValidationError as e:
                logger.warning(f"{method} {path}: unexpected payload: {e}")
                return ApiResult.transport_error("Unexpected response from backend.")

        logger.debug(f"{method} {path}: ok")
        return ApiResult.ok(payload)
