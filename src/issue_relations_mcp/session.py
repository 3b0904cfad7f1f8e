"""Line-delimited JSON-RPC 2.0 session for MCP over a byte stream.

One JSON value per newline-terminated line, in both directions. The session
plays both roles on the same stream:

- Server: answers initialize / ping / tools/list / tools/call from the peer,
  dispatching tool calls to the ToolRegistry it was given.
- Client: sends its own requests with monotonically increasing integer ids
  and resolves exactly one waiter per id when the matching response arrives.

Lifecycle: uninitialized -> handshaking -> ready -> closed. Lines are decoded
and dispatched strictly in arrival order; request handlers run as separate
tasks, so responses may complete out of order.
"""
from typing import Any, Optional, Protocol, Union
import asyncio
import enum
import itertools
import json
import logging

from mcp import types
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS

from .registry import ToolRegistry

logger = logging.getLogger("github-relations-mcp.session")

REQUEST_TIMEOUT = 10.0
STREAM_LIMIT = 2 ** 20

RequestId = Union[int, str]


class SessionState(str, enum.Enum):
    """Handshake lifecycle of a session."""

    UNINITIALIZED = "uninitialized"
    HANDSHAKING = "handshaking"
    READY = "ready"
    CLOSED = "closed"


class SessionError(Exception):
    """Base class for session failures."""


class SessionClosedError(SessionError):
    """Raised to waiters whose request was still pending when the session closed."""


class RequestTimeoutError(SessionError):
    """Raised when no response arrives within the request timeout."""

    def __init__(self, method: str, request_id: RequestId, timeout: float):
        super().__init__(f"Request timeout for method: {method} (id={request_id}, after {timeout:g}s)")
        self.method = method
        self.request_id = request_id
        self.timeout = timeout


class JsonRpcError(SessionError):
    """A JSON-RPC error object, either received from the peer or raised to produce one."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(f"JSON-RPC Error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data

    def to_error_data(self) -> types.ErrorData:
        return types.ErrorData(code=self.code, message=self.message, data=self.data)


class LineWriter(Protocol):
    """Write side of the stream (asyncio.StreamWriter satisfies this)."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...


def _dump(model) -> dict:
    return model.model_dump(by_alias=True, mode="json", exclude_none=True)


def _is_request_id(value: Any) -> bool:
    """JSON-RPC ids are strings, integers or null."""
    return value is None or (isinstance(value, (int, str)) and not isinstance(value, bool))


class JsonRpcSession:
    """JSON-RPC session over a line-delimited duplex stream."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: LineWriter,
        registry: Optional[ToolRegistry] = None,
        server_info: Optional[types.Implementation] = None,
        request_timeout: float = REQUEST_TIMEOUT,
    ):
        """Create a session.

        Args:
            reader: Source of inbound lines
            writer: Sink for outbound lines
            registry: Tool table to serve tools/list and tools/call from;
                None for a client-only session
            server_info: Name/version reported in the initialize response;
                None means this session does not accept initialize
            request_timeout: Seconds to wait for a response to an outbound request
        """
        self._reader = reader
        self._writer = writer
        self._registry = registry
        self._server_info = server_info
        self._request_timeout = request_timeout

        self.state = SessionState.UNINITIALIZED
        self.peer_info: Optional[dict] = None
        self.protocol_version: Optional[str] = None

        self._ids = itertools.count(1)
        self._pending: dict[RequestId, asyncio.Future] = {}
        self._tasks: set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ========================================================================
    # Outbound
    # ========================================================================

    async def _write(self, message: dict) -> None:
        data = (json.dumps(message, separators=(",", ":")) + "\n").encode("utf-8")
        async with self._write_lock:
            try:
                self._writer.write(data)
                await self._writer.drain()
            except ConnectionError as e:
                logger.error(f"Write failed, closing session: {e}")
                await self.close()
                raise SessionClosedError(f"Stream closed: {e}") from e

    async def send_request(
        self, method: str, params: Optional[dict] = None, timeout: Optional[float] = None
    ) -> dict:
        """Send a request and wait for its result.

        Raises:
            RequestTimeoutError: No response within the timeout; the id is
                forgotten and a late response is ignored
            SessionClosedError: The session closed before a response arrived
            JsonRpcError: The peer answered with an error object
        """
        if self.state is SessionState.CLOSED:
            raise SessionClosedError(f"Cannot send {method}: session is closed")

        timeout = self._request_timeout if timeout is None else timeout
        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            message["params"] = params

        try:
            await self._write(message)
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Request {request_id} ({method}) timed out after {timeout:g}s")
            raise RequestTimeoutError(method, request_id, timeout) from None
        finally:
            self._pending.pop(request_id, None)

    async def send_notification(self, method: str, params: Optional[dict] = None) -> None:
        """Send a fire-and-forget notification."""
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        await self._write(message)

    async def _send_result(self, request_id: RequestId, result: dict) -> None:
        await self._write({"jsonrpc": "2.0", "id": request_id, "result": result})

    async def _send_error(self, request_id: Optional[RequestId], error: JsonRpcError) -> None:
        await self._write({"jsonrpc": "2.0", "id": request_id, "error": _dump(error.to_error_data())})

    # ========================================================================
    # Client role
    # ========================================================================

    async def initialize(
        self,
        client_info: types.Implementation,
        protocol_version: str = types.LATEST_PROTOCOL_VERSION,
    ) -> types.InitializeResult:
        """Perform the client side of the handshake."""
        if self.state is not SessionState.UNINITIALIZED:
            raise SessionError(f"Cannot initialize a session in state {self.state.value}")

        self.state = SessionState.HANDSHAKING
        result = await self.send_request("initialize", {
            "protocolVersion": protocol_version,
            "capabilities": {},
            "clientInfo": _dump(client_info),
        })
        init = types.InitializeResult.model_validate(result)
        self.peer_info = _dump(init.serverInfo)
        self.protocol_version = str(init.protocolVersion)

        await self.send_notification("notifications/initialized")
        self.state = SessionState.READY
        return init

    def _require_ready(self) -> None:
        if self.state is not SessionState.READY:
            raise SessionError("Session not initialized. Call initialize() first.")

    async def list_tools(self) -> types.ListToolsResult:
        self._require_ready()
        return types.ListToolsResult.model_validate(await self.send_request("tools/list", {}))

    async def call_tool(self, name: str, arguments: Optional[dict] = None) -> types.CallToolResult:
        self._require_ready()
        result = await self.send_request("tools/call", {"name": name, "arguments": arguments or {}})
        return types.CallToolResult.model_validate(result)

    # ========================================================================
    # Inbound
    # ========================================================================

    async def run(self) -> None:
        """Process inbound lines until the stream ends, then close.

        Request handlers still in flight at end of stream are allowed to
        finish before the session closes.
        """
        try:
            while True:
                try:
                    line = await self._reader.readline()
                except ValueError as e:
                    # Line longer than the reader limit; the oversized data is discarded
                    logger.error(f"Dropping oversized message: {e}")
                    await self._send_error(None, JsonRpcError(types.PARSE_ERROR, "Message exceeds size limit"))
                    continue
                if not line:
                    logger.info("Input stream ended")
                    break
                try:
                    await self._process_line(line)
                except SessionClosedError:
                    break
                except Exception as e:
                    logger.exception(f"Dropping message that failed to process: {type(e).__name__}: {e}")

            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
        finally:
            await self.close()

    async def _process_line(self, line: bytes) -> None:
        text = line.decode("utf-8", errors="replace").strip()
        if not text:
            return

        try:
            message = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Parse error: {e}")
            await self._send_error(None, JsonRpcError(types.PARSE_ERROR, f"Parse error: {e.msg}"))
            return

        if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
            request_id = message.get("id") if isinstance(message, dict) else None
            await self._send_error(
                request_id if _is_request_id(request_id) else None,
                JsonRpcError(types.INVALID_REQUEST, "Invalid JSON-RPC 2.0 message"),
            )
            return

        request_id = message.get("id")
        if not _is_request_id(request_id):
            await self._send_error(None, JsonRpcError(types.INVALID_REQUEST, "Request id must be a string, integer or null"))
            return

        if "method" in message:
            if not isinstance(message["method"], str):
                await self._send_error(request_id, JsonRpcError(types.INVALID_REQUEST, "Method must be a string"))
                return
            if message.get("params") is not None and not isinstance(message["params"], dict):
                await self._send_error(request_id, JsonRpcError(types.INVALID_REQUEST, "Params must be an object"))
                return
            if "id" in message:
                await self._dispatch_request(message)
            else:
                await self._handle_notification(message)
        elif "id" in message and ("result" in message or "error" in message):
            self._handle_response(message)
        else:
            await self._send_error(request_id, JsonRpcError(types.INVALID_REQUEST, "Invalid JSON-RPC 2.0 message"))

    def _handle_response(self, message: dict) -> None:
        request_id = message["id"]
        future = self._pending.get(request_id)
        if future is None or future.done():
            # Unknown id, or its waiter already timed out
            logger.debug(f"Ignoring response for unknown or expired request id {request_id!r}")
            return

        if "error" in message:
            error = message["error"]
            if isinstance(error, dict):
                future.set_exception(JsonRpcError(
                    error.get("code", types.INTERNAL_ERROR),
                    error.get("message", "Unknown error"),
                    error.get("data"),
                ))
            else:
                future.set_exception(JsonRpcError(types.INTERNAL_ERROR, str(error)))
        else:
            future.set_result(message.get("result") or {})

    async def _handle_notification(self, message: dict) -> None:
        method = message["method"]
        params = message.get("params") or {}

        if method == "notifications/initialized":
            if self.state is SessionState.HANDSHAKING:
                self.state = SessionState.READY
                logger.info("Session ready")
            else:
                logger.warning(f"Ignoring initialized notification in state {self.state.value}")
        elif method == "notifications/cancelled":
            logger.info(f"Peer cancelled request {params.get('requestId')!r}: {params.get('reason', 'no reason given')}")
        else:
            logger.debug(f"Ignoring notification: {method}")

    async def _dispatch_request(self, message: dict) -> None:
        """Validate a request against the session state and start its handler task."""
        request_id = message["id"]
        method = message["method"]
        params = message.get("params") or {}

        if method == "initialize":
            if self._server_info is None:
                await self._send_error(request_id, JsonRpcError(types.METHOD_NOT_FOUND, f"Method not found: {method}"))
                return
            if self.state is not SessionState.UNINITIALIZED:
                await self._send_error(request_id, JsonRpcError(types.INVALID_REQUEST, "Session already initialized"))
                return
            self.state = SessionState.HANDSHAKING
            handler = self._handle_initialize
        elif method == "ping":
            handler = self._handle_ping
        elif method in ("tools/list", "tools/call") and self._registry is not None:
            if self.state is not SessionState.READY:
                await self._send_error(request_id, JsonRpcError(types.INVALID_REQUEST, "Session not initialized"))
                return
            handler = self._handle_list_tools if method == "tools/list" else self._handle_call_tool
        else:
            logger.warning(f"Unknown method requested: {method}")
            await self._send_error(request_id, JsonRpcError(types.METHOD_NOT_FOUND, f"Method not found: {method}"))
            return

        task = asyncio.create_task(self._run_request(request_id, method, handler, params))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_request(self, request_id: RequestId, method: str, handler, params: dict) -> None:
        try:
            result = await handler(params)
        except JsonRpcError as e:
            await self._send_error(request_id, e)
            return
        except SessionClosedError:
            return
        except Exception as e:
            logger.exception(f"Internal error handling {method}: {e}")
            await self._send_error(request_id, JsonRpcError(types.INTERNAL_ERROR, f"Internal error: {type(e).__name__}"))
            return
        await self._send_result(request_id, result)

    # ========================================================================
    # Server-role method handlers
    # ========================================================================

    async def _handle_initialize(self, params: dict) -> dict:
        requested = params.get("protocolVersion")
        if requested in SUPPORTED_PROTOCOL_VERSIONS:
            self.protocol_version = requested
        else:
            self.protocol_version = types.LATEST_PROTOCOL_VERSION
        self.peer_info = params.get("clientInfo")
        logger.info(f"Initialize from {self.peer_info} (protocol {self.protocol_version})")

        result = types.InitializeResult(
            protocolVersion=self.protocol_version,
            capabilities=types.ServerCapabilities(tools=types.ToolsCapability(listChanged=False)),
            serverInfo=self._server_info,
        )
        return _dump(result)

    async def _handle_ping(self, params: dict) -> dict:
        return {}

    async def _handle_list_tools(self, params: dict) -> dict:
        return _dump(types.ListToolsResult(tools=self._registry.list_tools()))

    async def _handle_call_tool(self, params: dict) -> dict:
        name = params.get("name")
        arguments = params.get("arguments")
        if not isinstance(name, str) or not name:
            raise JsonRpcError(types.INVALID_PARAMS, "tools/call requires a tool name")
        if arguments is not None and not isinstance(arguments, dict):
            raise JsonRpcError(types.INVALID_PARAMS, "tools/call arguments must be an object")

        result = await self._registry.call_tool(name, arguments)
        payload = _dump(result)
        # Structured content is already JSON-safe; keep its nulls (e.g. "parent": null)
        if result.structuredContent is not None:
            payload["structuredContent"] = result.structuredContent
        return payload

    # ========================================================================
    # Shutdown
    # ========================================================================

    async def close(self) -> None:
        """Close the session, rejecting every pending waiter and cancelling in-flight handlers."""
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED

        for task in list(self._tasks):
            task.cancel()

        for request_id, future in list(self._pending.items()):
            if not future.done():
                future.set_exception(SessionClosedError(f"Session closed before response to request {request_id}"))
        self._pending.clear()

        try:
            self._writer.close()
        except ConnectionError as e:
            logger.debug(f"Error closing writer: {e}")
        logger.info("Session closed")
