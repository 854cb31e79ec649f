"""
Lua Script Sessions for Open Dither.

A ScriptSession binds one sandboxed Lua runtime (via ``lupa``) to exactly one
PixelBuffer for exactly one script execution. The script must define a global
zero-argument function ``Execute``; while it runs, four pixel-access functions
are available as globals:

- ``GetColor(x, y)`` returns ``{r, g, b}``, black for invalid input
- ``SetColor(x, y, {r=, g=, b=})`` writes the given channels, ignores invalid input
- ``GetImageSize()`` returns ``{w, h, width, height}``
- ``DesaturateImage()`` applies the grayscale pre-step

None of them ever raise into the script.

Session lifecycle:
    UNINITIALIZED -> BOUND (bind) -> EXECUTING (execute_*) -> CLOSED

The session is closed on every exit path and can never be reused. Mutations a
script makes before failing are kept.

Example:
    >>> buffer = PixelBuffer.new(4, 4, (200, 10, 10))
    >>> with ScriptSession(buffer) as session:
    ...     session.execute_file("invert.lua")
"""

import logging
import math
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import lupa

from OD_Libs.constants import (
    SCRIPT_ENTRY_POINT,
    SCRIPT_REMOVED_GLOBALS,
    SCRIPT_SAFE_OS_FUNCTIONS,
)
from OD_Libs.DitherLib.pixel_buffer import PixelBuffer, RgbColor, clamp_channel

logger = logging.getLogger(__name__)

# The runtime runs without a string encoding, so Lua strings cross as bytes
_CHANNEL_KEYS = (b"r", b"g", b"b")
_BLACK: RgbColor = (0, 0, 0)
_NON_NUMERIC_WORDS = ("inf", "infinity", "nan")


class ScriptError(Exception):
    """Base class for errors reported from a script execution."""

    def __init__(self, message: str, script_name: Optional[str] = None):
        super().__init__(message)
        self.script_name = script_name


class ScriptLoadError(ScriptError):
    """The script could not be read, parsed or its top-level chunk failed."""


class ScriptContractError(ScriptError):
    """The script loaded but does not define the entry function."""


class ScriptRuntimeError(ScriptError):
    """The entry function raised an error while running."""


class ScriptSessionStateError(RuntimeError):
    """A session was used outside of its allowed lifecycle."""


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    BOUND = "bound"
    EXECUTING = "executing"
    CLOSED = "closed"


def _deny_attribute_access(obj: Any, attr_name: Any, is_setting: bool) -> Any:
    raise AttributeError(f"Access to Python attribute '{attr_name}' is not allowed from scripts")


def _as_number(value: Any) -> Optional[float]:
    """Convert a Lua value to a number the way Lua coerces arguments, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (str, bytes)):
        return _string_to_number(value)
    return None


def _string_to_number(value: Union[str, bytes]) -> Optional[float]:
    try:
        text = value.decode("ascii") if isinstance(value, bytes) else value
    except UnicodeDecodeError:
        return None

    text = text.strip()
    unsigned = text.lstrip("+-").lower()
    # Lua has no inf or nan literals and no digit separators
    if unsigned in _NON_NUMERIC_WORDS or "_" in text:
        return None

    try:
        if unsigned.startswith("0x"):
            return float.fromhex(text)
        return float(text)
    except ValueError:
        return None


def _as_coordinate(value: Any) -> Optional[int]:
    number = _as_number(value)
    if number is None or not math.isfinite(number):
        return None
    return int(number)


class ScriptSession:
    """
    Single-use binding of a sandboxed Lua runtime to one pixel buffer.

    Use as a context manager so the session is closed even when the caller
    bails out before executing anything.
    """

    def __init__(self, buffer: Optional[PixelBuffer] = None):
        self._state = SessionState.UNINITIALIZED
        self._buffer: Optional[PixelBuffer] = None
        self._runtime: Optional[Any] = None

        if buffer is not None:
            self.bind(buffer)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def buffer(self) -> Optional[PixelBuffer]:
        return self._buffer

    def bind(self, buffer: PixelBuffer) -> None:
        """
        Attach the target buffer to a fresh Lua runtime.

        Args:
            buffer: The pixel buffer scripts will read and write

        Raises:
            ScriptSessionStateError: If the session is not UNINITIALIZED
            TypeError: If buffer is not a PixelBuffer
        """
        if self._state is not SessionState.UNINITIALIZED:
            raise ScriptSessionStateError(
                f"Cannot bind a session in state '{self._state.value}'; sessions are single-use"
            )
        if not isinstance(buffer, PixelBuffer):
            raise TypeError(f"Expected PixelBuffer, got {type(buffer)}")

        self._buffer = buffer
        self._runtime = self._create_runtime()
        self._state = SessionState.BOUND
        logger.debug(f"Script session bound to {buffer!r}")

    def _create_runtime(self) -> Any:
        """Create the sandboxed runtime and register the pixel-access functions."""
        runtime = lupa.LuaRuntime(
            encoding=None,
            register_eval=False,
            register_builtins=False,
            attribute_filter=_deny_attribute_access,
        )
        lua_globals = runtime.globals()

        safe_os = runtime.eval(
            ("{" + ", ".join(f"{name} = os.{name}" for name in SCRIPT_SAFE_OS_FUNCTIONS) + "}").encode()
        )
        for name in SCRIPT_REMOVED_GLOBALS:
            lua_globals[name.encode()] = None
        lua_globals[b"os"] = safe_os

        lua_globals[b"GetColor"] = self._lua_get_color
        lua_globals[b"SetColor"] = self._lua_set_color
        lua_globals[b"GetImageSize"] = self._lua_get_image_size
        lua_globals[b"DesaturateImage"] = self._lua_desaturate_image
        return runtime

    def execute_file(self, script_path: Union[str, Path]) -> None:
        """
        Load a Lua file and invoke its ``Execute`` function.

        Raises:
            ScriptSessionStateError: If the session is not BOUND
            ScriptLoadError: If the file cannot be read or loaded
            ScriptContractError: If ``Execute`` is not defined
            ScriptRuntimeError: If ``Execute`` fails
        """
        self._require_bound()
        path = Path(script_path)

        try:
            source = path.read_bytes()
        except OSError as exc:
            self.close()
            raise ScriptLoadError(f"Cannot read script {path}: {exc}", str(path)) from exc

        self.execute_source(source, script_name=str(path))

    def execute_source(self, source: Union[str, bytes], script_name: str = "<script>") -> None:
        """
        Load Lua source and invoke its ``Execute`` function.

        The session is CLOSED when this returns or raises.
        """
        self._require_bound()
        self._state = SessionState.EXECUTING

        try:
            self._load_chunk(source, script_name)

            entry = self._runtime.globals()[SCRIPT_ENTRY_POINT.encode()]
            if lupa.lua_type(entry) != "function":
                raise ScriptContractError(
                    f"Script has to define a function '{SCRIPT_ENTRY_POINT}'", script_name
                )

            try:
                entry()
            except Exception as exc:
                raise ScriptRuntimeError(f"{script_name}: {exc}", script_name) from exc

            logger.debug(f"Script {script_name} finished")
        finally:
            self.close()

    def _load_chunk(self, source: Union[str, bytes], script_name: str) -> None:
        if isinstance(source, str):
            source = source.encode("utf-8")
        try:
            self._runtime.execute(source)
        except lupa.LuaSyntaxError as exc:
            raise ScriptLoadError(f"Syntax error in {script_name}: {exc}", script_name) from exc
        except Exception as exc:
            raise ScriptLoadError(f"Failed to load {script_name}: {exc}", script_name) from exc

    def close(self) -> None:
        """Release the runtime and the buffer reference. Safe to call repeatedly."""
        if self._state is SessionState.CLOSED:
            return
        self._runtime = None
        self._buffer = None
        self._state = SessionState.CLOSED

    def _require_bound(self) -> None:
        if self._state is not SessionState.BOUND:
            raise ScriptSessionStateError(
                f"Session must be bound to execute, current state is '{self._state.value}'"
            )

    def __enter__(self) -> "ScriptSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    # Functions exposed to Lua. They accept any arguments and never raise.

    def _color_table(self, color: RgbColor) -> Any:
        return self._runtime.table_from(dict(zip(_CHANNEL_KEYS, color)))

    def _lua_get_color(self, *args: Any) -> Any:
        x = _as_coordinate(args[0]) if len(args) > 0 else None
        y = _as_coordinate(args[1]) if len(args) > 1 else None

        if x is None or y is None or not self._buffer.in_bounds(x, y):
            return self._color_table(_BLACK)
        return self._color_table(self._buffer.get_pixel(x, y))

    def _lua_set_color(self, *args: Any) -> None:
        if len(args) < 3 or lupa.lua_type(args[2]) != "table":
            return None

        x = _as_coordinate(args[0])
        y = _as_coordinate(args[1])
        if x is None or y is None or not self._buffer.in_bounds(x, y):
            return None

        color_table = args[2]
        color = list(self._buffer.get_pixel(x, y))
        for index, key in enumerate(_CHANNEL_KEYS):
            try:
                value = _as_number(color_table[key])
            except lupa.LuaError:
                value = None
            if value is None or math.isnan(value):
                continue
            color[index] = clamp_channel(value)

        self._buffer.set_pixel(x, y, color)
        return None

    def _lua_get_image_size(self, *args: Any) -> Any:
        width, height = self._buffer.size
        return self._runtime.table_from(
            {b"w": width, b"h": height, b"width": width, b"height": height}
        )

    def _lua_desaturate_image(self, *args: Any) -> None:
        self._buffer.to_grayscale()
        return None


def execute_script(buffer: PixelBuffer, script_path: Union[str, Path]) -> None:
    """
    Run a Lua script file against a buffer in a fresh session.

    Raises:
        ScriptError: Any load, contract or runtime failure
    """
    with ScriptSession(buffer) as session:
        session.execute_file(script_path)


def run_script(buffer: PixelBuffer, script_path: Union[str, Path]) -> Optional[str]:
    """
    Run a Lua script file and report failures instead of raising.

    Args:
        buffer: Target pixel buffer, mutated in place
        script_path: Path to the Lua script

    Returns:
        None on success, otherwise the user-visible error message
    """
    try:
        execute_script(buffer, script_path)
    except ScriptError as exc:
        logger.warning(f"Lua error: {exc}")
        return str(exc)
    return None
