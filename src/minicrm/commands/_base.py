"""Click base classes that add an ``--examples`` flag.

``--help`` stays short; ``--examples`` prints ready-to-paste invocations
and exits. :class:`CrmGroup` makes every subcommand a :class:`CrmCommand`
so ``examples=`` works without passing ``cls=`` each time.
"""

from __future__ import annotations

from typing import Any

import click


class _ExamplesMixin:
    """Appends an eager ``--examples`` option when *examples* is given."""

    params: list[click.Parameter]

    def _init_examples(self, examples: str | None) -> None:
        self.examples = examples
        if not examples:
            return

        def _show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
            if value:
                click.echo(f"Examples for '{ctx.command_path}':\n\n{examples}")
                ctx.exit(0)

        self.params.append(
            click.Option(
                ["--examples"],
                is_flag=True,
                expose_value=False,
                is_eager=True,
                callback=_show,
                help="Show usage examples.",
            )
        )


class CrmCommand(_ExamplesMixin, click.Command):
    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)


class CrmGroup(_ExamplesMixin, click.Group):
    command_class = CrmCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._init_examples(examples)
