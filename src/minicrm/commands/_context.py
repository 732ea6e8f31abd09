"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy ServiceFactory initialization, the
error-to-result boundary, and centralized result emission.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import click
import pydantic

from minicrm.config.logging import configure_logging
from minicrm.domain.errors import CrmError
from minicrm.output.formatters import OutputSettings, format_result
from minicrm.services.result import ServiceResult, result_from_error

if TYPE_CHECKING:
    from minicrm.config.settings import CrmSettings
    from minicrm.services.factory import ServiceFactory

Action = Callable[[list[str]], dict[str, Any]]


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The factory is created lazily so ``--help`` and ``--version`` never
    touch the database.
    """

    def __init__(self, settings: CrmSettings) -> None:
        self.settings = settings
        self._factory: ServiceFactory | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def factory(self) -> ServiceFactory:
        """The service factory (created lazily on first access)."""
        if self._factory is None:
            from minicrm.services.factory import ServiceFactory

            self._factory = ServiceFactory(self.settings)
        return self._factory

    def close(self) -> None:
        if self._factory is not None:
            self._factory.close()
            self._factory = None

    def run(self, op: str, action: Action) -> None:
        """Run *action* and emit its outcome as a ServiceResult.

        *action* receives a warnings list to fill and returns the result
        data. Domain errors become a failed result; anything else
        propagates.
        """
        warnings: list[str] = []
        try:
            data = action(warnings)
        except (CrmError, pydantic.ValidationError) as exc:
            self.emit(result_from_error(op, exc))
            return
        if self._factory is not None:
            warnings.extend(
                f"Plugin {name} failed to register its handlers"
                for name in self._factory.plugin_failures
            )
        self.emit(ServiceResult(ok=True, op=op, data=data, warnings=warnings))

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
