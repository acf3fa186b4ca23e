"""
Command-line front end for the Emadocs compiler.

Usage:
    emadocs <input.ema> [-o dist] [-m] [--sourcemap] [-v]

Writes index.html, styles.css and script.js into the output directory
(created together with its css/ and js/ subdirectories).
"""

import argparse
import logging
import sys
from pathlib import Path

from emadocs.models import CompileOptions
from emadocs.orchestrator import Compiler


def cmd_compile(args):
    """Compile one .ema file into the output directory."""
    try:
        source = Path(args.input).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    options = CompileOptions(minify=args.minify, sourcemap=args.sourcemap)
    result = Compiler(options).compile(source, args.input)

    if not result.success:
        print("Compilation failed:", file=sys.stderr)
        for error in result.errors:
            print(f"  Error: {error}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(f"  Warning: {warning}", file=sys.stderr)

    out = Path(args.output)
    (out / "css").mkdir(parents=True, exist_ok=True)
    (out / "js").mkdir(parents=True, exist_ok=True)
    (out / "index.html").write_text(result.markup, encoding="utf-8")
    (out / "styles.css").write_text(result.style, encoding="utf-8")
    (out / "script.js").write_text(result.script, encoding="utf-8")

    print("Compilation successful!")
    print(f"  HTML: {out / 'index.html'}")
    print(f"  CSS:  {out / 'styles.css'}")
    print(f"  JS:   {out / 'script.js'}")
    print(f"  Time: {result.elapsed:.2f}ms")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="emadocs",
        description="Compile EmadocsLang (.ema) files to HTML, CSS and JavaScript",
    )
    parser.add_argument("input", help="Input .ema file")
    parser.add_argument("-o", "--output", default="dist", help="Output directory")
    parser.add_argument("-m", "--minify", action="store_true", help="Minify output")
    parser.add_argument("--sourcemap", action="store_true", help="Generate source maps")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return cmd_compile(args)


if __name__ == "__main__":
    sys.exit(main())
