"""Shared contract for every command.

A command declares its options, mutually exclusive option sets, validators
and (for destructive actions) a confirmation question. ``execute_command``
runs those pieces in a fixed order before handing control to the command's
own ``action``:

1. deprecated option/command aliasing
2. validators, first failure wins
3. option sets, first failing set wins
4. confirmation for destructive commands
5. the action itself (lookups, primary calls, polling, output)

Nothing touches the network before step 5.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

import click
import typer
from rich.console import Console
from rich.markup import escape

from .cli_shared import (
    GlobalOpts,
    UsageError,
    _print_json,
    _print_text,
)
from .graph_client import build_session

Validator = Callable[[argparse.Namespace], Awaitable["bool | str"]]
Prompt = Callable[[str], bool]


@dataclass(frozen=True)
class OptionDescriptor:
    name: str
    flag: str
    short: str | None = None
    required: bool = False
    boolean: bool = False
    autocomplete: tuple[str, ...] | None = None


@dataclass(frozen=True)
class OptionSet:
    options: tuple[str, ...]
    required: bool = True
    run_when: Callable[[argparse.Namespace], bool] | None = None


@dataclass(frozen=True)
class OptionAlias:
    deprecated: str
    canonical: str


class CommandOutput:
    """Where a command writes its payload (stdout) and diagnostics (stderr)."""

    def __init__(self, g: GlobalOpts, *, console: Console | None = None) -> None:
        self.g = g
        self.console = console or Console(stderr=True)

    def log(self, obj: Any, *, properties: Sequence[str] | None = None) -> None:
        if self.g.output == "text":
            _print_text(obj, properties=properties)
        else:
            _print_json(obj, pretty=self.g.pretty)

    def log_to_stderr(self, msg: str) -> None:
        self.console.print(escape(msg), highlight=False, soft_wrap=True)

    def warn(self, msg: str) -> None:
        if self.g.quiet:
            return
        self.console.print(f"[yellow]warning:[/yellow] {escape(msg)}", highlight=False, soft_wrap=True)

    def verbose(self, msg: str) -> None:
        if self.g.verbose or self.g.debug:
            self.log_to_stderr(msg)

    def debug(self, msg: str) -> None:
        if self.g.debug:
            self.console.print(f"[dim]debug:[/dim] {escape(msg)}", highlight=False, soft_wrap=True)


class Command:
    name: str = ""
    description: str = ""
    aliases: tuple[str, ...] = ()
    destructive: bool = False
    default_properties: tuple[str, ...] | None = None
    options: tuple[OptionDescriptor, ...] = ()
    option_sets: tuple[OptionSet, ...] = ()
    option_aliases: tuple[OptionAlias, ...] = ()

    def validators(self) -> list[Validator]:
        return []

    def telemetry(self, args: argparse.Namespace) -> dict[str, Any]:
        props: dict[str, Any] = {}
        for opt in self.options:
            val = getattr(args, opt.name, None)
            props[opt.name] = val if isinstance(val, bool) else val is not None
        return props

    def confirm_message(self, args: argparse.Namespace) -> str:
        raise NotImplementedError(f"{self.name} does not ask for confirmation")

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        raise NotImplementedError

    def flag_for(self, name: str) -> str:
        for opt in self.options:
            if opt.name == name:
                return opt.flag
        return name


def build_args(command: Command, **values: Any) -> argparse.Namespace:
    """Namespace with every declared option present (flags False, others None)."""
    ns: dict[str, Any] = {o.name: (False if o.boolean else None) for o in command.options}
    ns.update(values)
    return argparse.Namespace(**ns)


def check_option_sets(
    option_sets: Sequence[OptionSet],
    args: argparse.Namespace,
    options: Sequence[OptionDescriptor] = (),
) -> str | None:
    flags = {o.name: o.flag for o in options}
    for option_set in option_sets:
        if option_set.run_when is not None and not option_set.run_when(args):
            continue
        present = [n for n in option_set.options if getattr(args, n, None) is not None]
        names = ", ".join(flags.get(n, n) for n in option_set.options)
        if not present and option_set.required:
            return f"Specify one of: {names}"
        if len(present) > 1:
            return f"Specify only one of: {names}"
    return None


async def run_validators(validators: Sequence[Validator], args: argparse.Namespace) -> bool | str:
    for validator in validators:
        result = await validator(args)
        if result is not True:
            return str(result)
    return True


def _declared_option_validator(options: Sequence[OptionDescriptor]) -> Validator:
    async def validate(args: argparse.Namespace) -> bool | str:
        for opt in options:
            val = getattr(args, opt.name, None)
            if opt.required and (val is None or (isinstance(val, str) and not val.strip())):
                return f"Required option {opt.flag} not specified"
            if opt.autocomplete and val is not None and str(val) not in opt.autocomplete:
                return f"{val} is not a valid {opt.flag.lstrip('-')} value. Allowed values {'|'.join(opt.autocomplete)}."
        return True

    return validate


async def validate_args(command: Command, args: argparse.Namespace) -> bool | str:
    """Run the validator chain, then the option sets. ``True`` when both pass."""
    chain = [_declared_option_validator(command.options), *command.validators()]
    result = await run_validators(chain, args)
    if result is not True:
        return result
    option_set_error = check_option_sets(command.option_sets, args, command.options)
    if option_set_error:
        return option_set_error
    return True


def _typer_prompt(message: str) -> bool:
    try:
        return bool(typer.confirm(message, default=False))
    except click.Abort:
        # EOF on stdin: take the default answer.
        return False


async def confirm_action(message: str, *, skip: bool, prompt: Prompt | None = None) -> bool:
    if skip:
        return True
    ask = prompt or _typer_prompt
    return bool(await asyncio.to_thread(ask, message))


def apply_option_aliases(command: Command, args: argparse.Namespace, out: CommandOutput) -> None:
    for alias in command.option_aliases:
        val = getattr(args, alias.deprecated, None)
        if val is None:
            continue
        setattr(args, alias.canonical, val)
        setattr(args, alias.deprecated, None)
        out.warn(
            f"Option '{command.flag_for(alias.deprecated)}' is deprecated. "
            f"Please use '{command.flag_for(alias.canonical)}' instead."
        )


async def execute_command(
    command: Command,
    args: argparse.Namespace,
    session: Any,
    g: GlobalOpts,
    *,
    out: CommandOutput | None = None,
    prompt: Prompt | None = None,
    invoked_as: str | None = None,
) -> int:
    out = out or CommandOutput(g)
    if invoked_as and invoked_as != command.name:
        out.warn(f"Command '{invoked_as}' is deprecated. Please use '{command.name}' instead.")
    apply_option_aliases(command, args, out)
    out.debug(f"telemetry {command.name}: {json.dumps(command.telemetry(args), sort_keys=True)}")

    result = await validate_args(command, args)
    if result is not True:
        raise UsageError(str(result))

    if command.destructive:
        proceed = await confirm_action(
            command.confirm_message(args),
            skip=bool(getattr(args, "confirm", False)),
            prompt=prompt,
        )
        if not proceed:
            out.debug(f"{command.name}: not confirmed, nothing changed")
            return 0

    await command.action(session, args, out)
    return 0


def run_command(
    command: Command,
    args: argparse.Namespace,
    g: GlobalOpts,
    *,
    invoked_as: str | None = None,
    prompt: Prompt | None = None,
) -> int:
    out = CommandOutput(g)
    session = build_session(g, trace=out.debug)
    return asyncio.run(
        execute_command(command, args, session, g, out=out, prompt=prompt, invoked_as=invoked_as)
    )
