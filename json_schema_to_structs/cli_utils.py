"""
CLI utilities for command line reconstruction and introspection.
"""

from pathlib import Path

import click

COMMAND_NAME = "json_schema_to_structs"


def reconstruct_command_line(click_command: click.Command) -> str:
    """
    Reconstruct the command line from the current Click context.

    Paths are reduced to their file names so the header of generated files
    does not depend on where the command was run.

    Args:
        click_command: Click command object for introspection

    Returns:
        Reconstructed command line string
    """
    try:
        ctx = click.get_current_context()
        cli_args = ctx.params
    except RuntimeError:
        # No active context
        return COMMAND_NAME

    if not cli_args:
        return COMMAND_NAME

    arguments = []
    options = []
    for param in click_command.params:
        value = cli_args.get(param.name)
        if not value:
            continue

        if isinstance(param, click.Argument):
            arguments.append(_format_value(value))
        elif isinstance(param, click.Option):
            if value == param.default:
                continue
            flag = param.opts[0] if param.opts else f"--{param.name}"
            if param.is_flag:
                options.append(flag)
            else:
                options.extend([flag, _format_value(value)])

    return " ".join([COMMAND_NAME, *arguments, *options])


def _format_value(value) -> str:
    if isinstance(value, (str, Path)) and ("/" in str(value) or Path(str(value)).exists()):
        return Path(str(value)).name
    return str(value)
