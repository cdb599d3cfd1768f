"""
asmpp - Preprocessor Command-Line Interface
===========================================

Runs the macro preprocessor over a source file and writes the flat
result to a file or to standard output.

Usage Examples
--------------
Print to standard output:
    $ asmpp main.asm

With output file:
    $ asmpp main.asm -o main.out

Allow redefinition of constants and macros:
    $ asmpp --lazy main.asm -o main.out

With include path and predefined constants:
    $ asmpp -I ./include -D DEBUG -D SIZE=16 main.asm

Guard against runaway recursion:
    $ asmpp --max-depth 64 main.asm
"""

import logging
from pathlib import Path
from typing import Optional

import click

from asmpp import __version__
from asmpp.cli.errors import handle_cli_exception
from asmpp.directives import NAME_PATTERN
from asmpp.errors import ResourceError
from asmpp.preprocessor import Preprocessor
from asmpp.symbols import Mode

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def parse_define(definition: str) -> tuple[str, str]:
    """
    Parse a -D option value.

    ``NAME=VALUE`` defines NAME as VALUE; a bare ``NAME`` defines it as ``1``.

    Raises:
        click.BadParameter: If NAME is not a valid symbol name
    """
    if "=" in definition:
        name, value = definition.split("=", 1)
    else:
        name, value = definition, "1"

    name = name.strip()
    if not NAME_PATTERN.match(name):
        raise click.BadParameter(f"invalid constant name in -D {definition}")
    return name, value


def process_to_file(pp: Preprocessor, input_file: Path, output: Path) -> None:
    """
    Process ``input_file`` writing each line to ``output`` as it is produced.

    On any error the partially written output file is deleted.

    Raises:
        ResourceError: If the output file cannot be created
    """
    try:
        handle = output.open("w", encoding="utf-8")
    except OSError as e:
        raise ResourceError(str(output), e.strerror or str(e)) from e

    try:
        with handle:
            pp.process_file(input_file, sink=lambda line: handle.write(line + "\n"))
    except BaseException:
        # Includes KeyboardInterrupt: never leave a partial file behind
        logger.debug(f"Removing partial output {output}")
        output.unlink(missing_ok=True)
        raise


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: standard output)",
)
@click.option(
    "--strict/--lazy",
    default=True,
    help="Strict mode (default) rejects redefinition of constants and macros; "
         "lazy mode lets later definitions overwrite earlier ones.",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "-D", "--define",
    multiple=True,
    help="Define constant (format: NAME or NAME=VALUE)",
)
@click.option(
    "--max-depth",
    type=click.IntRange(min=1),
    default=None,
    help="Fail when includes, macro bodies and conditional blocks nest deeper "
         "than this. Default: unlimited.",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="asmpp")
def main(
    input_file: Path,
    output: Optional[Path],
    strict: bool,
    include: tuple[Path, ...],
    define: tuple[str, ...],
    max_depth: Optional[int],
    verbose: bool,
) -> None:
    """
    Expand #include, #constant, #macro and #if directives.

    INPUT_FILE is the source file to preprocess.

    \b
    Examples:
        asmpp main.asm               # Write to standard output
        asmpp main.asm -o main.out   # Write to a file
        asmpp --lazy main.asm        # Allow redefinitions
        asmpp -D DEBUG main.asm      # Predefine a constant
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s: %(message)s")

    try:
        defines = dict(parse_define(d) for d in define)

        if output is not None and output.resolve() == input_file.resolve():
            raise click.BadParameter("output file would overwrite the input file")

        mode = Mode.STRICT if strict else Mode.LAZY
        pp = Preprocessor(
            mode=mode,
            include_paths=list(include),
            defines=defines,
            max_depth=max_depth,
        )

        if verbose:
            click.echo(f"Preprocessing {input_file} ({mode.value} mode)...", err=True)

        if output is None:
            for line in pp.process_file(input_file):
                click.echo(line)
        else:
            process_to_file(pp, input_file, output)

        if verbose:
            stats = pp.stats
            if output is not None:
                click.echo(f"Wrote {stats.lines_emitted} lines to {output}", err=True)
            click.echo(
                f"Read {stats.lines_read} lines; {stats.constants_defined} constants, "
                f"{stats.macros_defined} macros defined; "
                f"{stats.macro_expansions} macro expansions, "
                f"{stats.files_included} includes; "
                f"max nesting depth {stats.max_depth_reached}",
                err=True,
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
