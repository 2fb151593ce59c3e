"""Domain-specific exceptions for route chunk analysis."""

from __future__ import annotations

from typing import Sequence


class RouteChunkError(RuntimeError):
    """Base error for route chunk analysis failures."""


class RouteModuleSyntaxError(RouteChunkError):
    """Raised when a route module cannot be parsed."""

    def __init__(self, *, line: int, column: int, module_id: str | None = None) -> None:
        self.line = line
        self.column = column
        self.module_id = module_id
        location = f"{module_id}:" if module_id else "line "
        super().__init__(f"Failed to parse route module at {location}{line}:{column}")


class UnknownRouteChunkError(RouteChunkError, ValueError):
    """Raised when a chunk name outside the known set is requested."""


class RouteChunkValidationError(RouteChunkError):
    """Raised in enforce mode when requested exports could not be split."""

    def __init__(self, *, module_path: str, export_names: Sequence[str]) -> None:
        self.module_path = module_path
        self.export_names = tuple(export_names)
        plural = len(self.export_names) > 1
        message = "\n\n".join(
            [
                f"Error splitting route module: {module_path}",
                "\n".join(f"- {name}" for name in self.export_names),
                (
                    f"{'These exports' if plural else 'This export'} could not be "
                    f"split into {'their own chunks' if plural else 'its own chunk'} "
                    f"because {'they share' if plural else 'it shares'} code with "
                    "other exports. You should extract any shared code into its "
                    "own module and then import it within the route module."
                ),
            ]
        )
        super().__init__(message)


__all__ = [
    "RouteChunkError",
    "RouteChunkValidationError",
    "RouteModuleSyntaxError",
    "UnknownRouteChunkError",
]
