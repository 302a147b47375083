from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .config import GeneratorConfig, load_config
from .errors import GenerationError
from .generator import generate, write_files
from .loader import load_ir

logger = logging.getLogger("sdkgen")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sdkgen", description="Generate a typed Python client SDK from an API IR.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    gen = subparsers.add_parser("generate", help="Generate an SDK package from an IR document")
    gen.add_argument("--ir", required=True, type=Path, help="IR document (.json, .yaml or .yml)")
    gen.add_argument("--output", required=True, type=Path, help="Directory the SDK is written into")
    gen.add_argument("--package", help="Import name of the generated package")
    gen.add_argument("--config", type=Path, help="Generator config file (YAML or JSON)")
    gen.add_argument("--sdk-version", help="SDK version reported in platform headers")
    gen.add_argument("--no-readme", action="store_true", help="Skip README.md")
    gen.add_argument("--verbose", "-v", action="store_true", help="Log each generation step")
    return parser


def _config(args: argparse.Namespace) -> GeneratorConfig:
    readme = False if args.no_readme else None
    if args.config is not None:
        return load_config(args.config, package=args.package, sdk_version=args.sdk_version, readme=readme)
    if not args.package:
        raise GenerationError("either --package or --config is required")
    return GeneratorConfig(package=args.package, sdk_version=args.sdk_version, readme=not args.no_readme)


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[codegen] %(message)s",
    )
    try:
        config = _config(args)
        ir = load_ir(args.ir)
        logger.info("%s -> %s (package %s)", args.ir, args.output, config.package)
        files = generate(ir, config)
        write_files(files, args.output)
    except GenerationError as exc:
        print(f"sdkgen: error: {exc}", file=sys.stderr)
        return 1
    return 0
