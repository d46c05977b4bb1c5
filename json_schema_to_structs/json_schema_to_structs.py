import json
import logging

import click

from .cli_utils import reconstruct_command_line
from .pipeline import LANGUAGES, CodeGeneratorConfig, OutputMode, PipelineGenerator, SchemaGenerationError


@click.command()
@click.option("--root-name", "-n", default=None, type=str, help="Name of the root type (default: title, then file name)")
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option("--language", "-l", default="python", type=click.Choice(list(LANGUAGES)))
@click.option("--force", "-f", is_flag=True, default=False, help="Overwrite the output file if it exists")
@click.option("--format", "format_code", is_flag=True, default=False, help="Format Python output with ruff")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log resolution details")
@click.argument("path", default=None, type=click.Path(exists=True, resolve_path=True))
@click.argument("output", default=None, type=click.Path(resolve_path=True))
def json_schema_to_structs(root_name, config, language, force, format_code, verbose, path, output):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if config is not None:
        try:
            with open(config, encoding="utf-8") as f:
                config = CodeGeneratorConfig.from_dict(json.load(f))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise click.ClickException(f"Invalid config file {config}: {e}") from e
    else:
        config = CodeGeneratorConfig()

    # CLI flags override the config file
    if root_name:
        config.root_name = root_name
    if force:
        config.output.mode = OutputMode.FORCE
    if format_code:
        config.formatter.enabled = True

    codegen = PipelineGenerator(config, language, command_line=reconstruct_command_line(json_schema_to_structs))
    try:
        out = codegen.generate(path)
        codegen.write(out, output)
    except SchemaGenerationError as e:
        raise click.ClickException(str(e)) from e
