"""Execution of Starlark scripts in isolated interpreter instances."""

from __future__ import annotations

import multiprocessing
from typing import Any, Mapping, Optional, Tuple

import starlark as sl

from ..errors import NoEntrypoint, ScriptExecutionError, ScriptTimeout

_SCRIPT_NAME = "pipeline.star"


def _dialect() -> sl.Dialect:
    # Legacy pipeline scripts use top-level if/for blocks.
    dialect = sl.Dialect.extended()
    dialect.enable_top_level_stmt = True
    return dialect


def _globals() -> sl.Globals:
    return sl.Globals.extended_by([sl.LibraryExtension.StructType])


def _record_call(entrypoint: str, context: Mapping[str, Mapping[str, Any]]) -> str:
    fields = ", ".join(f"{key} = struct(**_ctx_{key})" for key in context)
    return f"{entrypoint}(struct({fields}))"


def _run(source: str, entrypoint: str, context: Mapping[str, Mapping[str, Any]]) -> Any:
    module = sl.Module()
    dialect = _dialect()
    builtins = _globals()
    try:
        sl.eval(module, sl.parse(_SCRIPT_NAME, source, dialect), builtins)
    except sl.StarlarkError as exc:
        raise ScriptExecutionError(f"error executing file: {exc}") from exc

    # Resolving an undefined global fails before evaluation starts.
    try:
        kind = sl.eval(module, sl.parse("<entrypoint>", f"type({entrypoint})", dialect), builtins)
    except sl.StarlarkError as exc:
        raise NoEntrypoint(entrypoint) from exc
    if kind != "function":
        raise NoEntrypoint(entrypoint)

    # Values are handed over as module globals and wrapped into read-only structs.
    for key, values in context.items():
        module[f"_ctx_{key}"] = dict(values)
    try:
        call = sl.parse("<main>", _record_call(entrypoint, context), dialect)
        return sl.eval(module, call, builtins)
    except sl.StarlarkError as exc:
        raise ScriptExecutionError(f"error building conf: {exc}") from exc


def _run_in_child(connection, source: str, entrypoint: str, context: Mapping[str, Any]) -> None:
    try:
        result: Tuple[str, Any] = ("ok", _run(source, entrypoint, context))
    except NoEntrypoint:
        result = ("no-entrypoint", entrypoint)
    except Exception as exc:  # reported to the parent process
        result = ("error", str(exc))
    connection.send(result)
    connection.close()


class StarlarkInterpreter:
    """Runs a script, calls its entrypoint with a context and returns the result.

    The context maps record names to flat string fields; the entrypoint gets a
    struct whose attributes are structs of those fields (``ctx.repo.name``).
    Every call uses a fresh module, so no state leaks between scripts. When
    ``timeout`` is set the script runs in a child process which is terminated
    once the deadline passes.
    """

    def __init__(self, *, timeout: Optional[float] = None) -> None:
        self.timeout = timeout

    def execute(self, source: str, entrypoint: str, context: Mapping[str, Any]) -> Any:
        if self.timeout is None:
            return _run(source, entrypoint, context)
        return self._execute_with_deadline(source, entrypoint, context, self.timeout)

    @staticmethod
    def _execute_with_deadline(
        source: str, entrypoint: str, context: Mapping[str, Any], timeout: float
    ) -> Any:
        mp_context = multiprocessing.get_context("spawn")
        reader, writer = mp_context.Pipe(duplex=False)
        process = mp_context.Process(
            target=_run_in_child,
            args=(writer, source, entrypoint, {key: dict(value) for key, value in context.items()}),
            daemon=True,
        )
        process.start()
        writer.close()
        try:
            if not reader.poll(timeout):
                process.terminate()
                raise ScriptTimeout(timeout)
            try:
                status, payload = reader.recv()
            except EOFError as exc:
                raise ScriptExecutionError("interpreter exited without a result") from exc
        finally:
            reader.close()
            process.join(timeout=1.0)
            if process.is_alive():  # pragma: no cover - stuck after terminate
                process.kill()
                process.join()

        if status == "no-entrypoint":
            raise NoEntrypoint(payload)
        if status == "error":
            raise ScriptExecutionError(payload)
        return payload


__all__ = ["StarlarkInterpreter"]
