"""
Text-game compiler driver.

Reads .txg source, parses it into a Program document and writes the
document as JSON for the game engine.
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ParseError
from .parser import Parser


class TXGCompiler:
    """Main text-game compiler class."""

    def __init__(self, verbose: bool = False, functions: Optional[Dict[str, Optional[int]]] = None,
                 indent: Optional[int] = 2):
        self.verbose = verbose
        self.functions = functions  # Known engine functions and their arity
        self.indent = indent
        self.warnings: List[str] = []

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            print(f"[txgc] {message}", file=sys.stderr)

    def warn(self, code: str, message: str):
        """Add a compilation warning with a code."""
        warning = f"{code}: {message}"
        self.warnings.append(warning)
        if self.verbose:
            print(f"[txgc] Warning: {warning}", file=sys.stderr)

    def get_warnings(self) -> List[str]:
        """Get all warnings generated during compilation."""
        return self.warnings.copy()

    def compile_string(self, source: str, filename: str = "<input>") -> Dict[str, Any]:
        """
        Compile text-game source to the engine's document form.

        Args:
            source: Source text
            filename: Name used in diagnostics

        Returns:
            JSON-compatible program document

        Raises:
            ParseError: On the first grammar violation
        """
        self.log(f"Parsing {filename}...")
        parser = Parser(source, filename, verbose=self.verbose, functions=self.functions)
        program = parser.parse()

        self.warnings.extend(parser.get_warnings())
        self.log(f"Parsed {program!r}")
        return program.to_dict()

    def compile_file(self, input_path: str, output_path: Optional[str] = None) -> bool:
        """
        Compile a .txg source file to a JSON document.

        Args:
            input_path: Path to .txg source file
            output_path: Path to output .json file (auto-generated if None)

        Returns:
            True if compilation succeeded, False otherwise
        """
        if output_path is None:
            output_path = str(Path(input_path).with_suffix(".json"))

        try:
            self.log(f"Reading {input_path}...")
            with open(input_path, 'r', encoding='utf-8') as f:
                source = f.read()

            document = self.compile_string(source, str(input_path))

            self.log(f"Writing {output_path}...")
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=self.indent)
                f.write("\n")

            self.log(f"Compilation successful: {len(document['nodes'])} nodes, "
                     f"{len(document['items'])} items")
            return True

        except FileNotFoundError:
            print(f"Error: File not found: {input_path}", file=sys.stderr)
            return False
        except ParseError as e:
            print(f"Syntax error: {e.render()}", file=sys.stderr)
            return False


def main(argv: Optional[List[str]] = None):
    """Command-line interface for the compiler."""
    import argparse

    parser = argparse.ArgumentParser(
        description='Text-game compiler - compile .txg source to a JSON program document'
    )
    parser.add_argument('input', help='Input .txg source file')
    parser.add_argument('-o', '--output', help='Output JSON file (default: input with .json suffix)')
    parser.add_argument('--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--compact', action='store_true',
                        help='Write JSON without indentation')

    args = parser.parse_args(argv)

    compiler = TXGCompiler(verbose=args.verbose, indent=None if args.compact else 2)
    success = compiler.compile_file(args.input, args.output)

    for warning in compiler.get_warnings():
        print(f"Warning: {warning}", file=sys.stderr)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
