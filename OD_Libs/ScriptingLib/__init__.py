"""
ScriptingLib - Sandboxed Lua scripting

This module lets users implement their own pixel transform in Lua,
bound to a single pixel buffer for a single execution.
"""

from OD_Libs.ScriptingLib.script_session import (
    ScriptSession,
    SessionState,
    ScriptError,
    ScriptLoadError,
    ScriptContractError,
    ScriptRuntimeError,
    ScriptSessionStateError,
    execute_script,
    run_script,
)

__all__ = [
    "ScriptSession",
    "SessionState",
    "ScriptError",
    "ScriptLoadError",
    "ScriptContractError",
    "ScriptRuntimeError",
    "ScriptSessionStateError",
    "execute_script",
    "run_script",
]
