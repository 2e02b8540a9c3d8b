"""Converters turning raw configuration files into pipeline documents."""

from __future__ import annotations

from ..config import ConverterConfig
from .base import Converter, Converters
from .interpreter import StarlarkInterpreter
from .starlark import StarlarkConverter


def build_converters(config: ConverterConfig) -> Converters:
    """Instantiate the converter chain in precedence order."""
    interpreter = StarlarkInterpreter(timeout=config.script_timeout)
    return Converters([StarlarkConverter(interpreter)])


__all__ = [
    "Converter",
    "Converters",
    "StarlarkConverter",
    "StarlarkInterpreter",
    "build_converters",
]
