#!/usr/bin/env python3
"""
PUF PFP Generator CLI.
Edit a local photo from the terminal, or start the API server.
"""

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import Optional, Sequence

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


class Colors:
    """ANSI colors for terminal"""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"


def info(msg):
    print(f"{Colors.BLUE}[INFO]{Colors.RESET} {msg}")


def success(msg):
    print(f"{Colors.GREEN}[OK]{Colors.RESET} {msg}")


def error(msg):
    print(f"{Colors.RED}[ERROR]{Colors.RESET} {msg}", file=sys.stderr)


OUTPUT_EXTENSIONS = {"image/png": ".png", "image/jpeg": ".jpg", "image/webp": ".webp"}


def default_output_path(input_path: Path, mime_type: str = "image/png") -> Path:
    ext = OUTPUT_EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ".png"
    return input_path.with_name(f"{input_path.stem}_pfp{ext}")


class PfpGeneratorCLI:
    """Command line front end for the edit pipeline"""

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="pfp-generator",
            description="PUF PFP Generator - security camera filter + PUF chain via Gemini",
        )
        sub = parser.add_subparsers(dest="command", required=True)

        edit_parser = sub.add_parser("edit", help="Edit a local image")
        edit_parser.add_argument("input", type=Path, help="Image to edit (PNG, JPG, WEBP)")
        edit_parser.add_argument(
            "-o", "--output", type=Path, default=None,
            help="Where to write the result (default: <input>_pfp.<ext of the result>)",
        )
        edit_parser.add_argument("--preset", default=None, help="Edit preset name")

        serve_parser = sub.add_parser("serve", help="Start the API server")
        serve_parser.add_argument("--host", default=None)
        serve_parser.add_argument("--port", type=int, default=None)
        serve_parser.add_argument("--reload", action="store_true")

        sub.add_parser("presets", help="List edit presets")
        return parser

    async def _edit(
        self, client, input_path: Path, output_path: Optional[Path], preset
    ) -> int:
        from services.errors import EncodingError
        from services.image_encoder import encode_file
        from services.transform_client import EditFailure

        try:
            image = encode_file(input_path)
        except EncodingError as e:
            error(str(e))
            return EXIT_FAILED

        info(f"Editing {input_path.name} ({image.mime_type}) with preset '{preset.name}'...")
        result = await client.transform(image, preset.instruction)
        if isinstance(result, EditFailure):
            error(result.message)
            return EXIT_FAILED

        if output_path is None:
            output_path = default_output_path(input_path, result.image.mime_type)

        try:
            output_path.write_bytes(result.image.to_bytes())
        except (OSError, EncodingError) as e:
            error(f"Could not write {output_path}: {e}")
            return EXIT_FAILED

        success(f"{preset.accessory_label} -> {output_path}")
        return EXIT_OK

    def cmd_edit(self, args, client=None) -> int:
        from config import get_settings
        from services.edit_presets import get_preset
        from services.errors import ConfigurationError
        from services.transform_client import GeminiTransformClient

        try:
            preset = get_preset(args.preset)
        except KeyError as e:
            error(str(e.args[0]))
            return EXIT_FAILED

        if client is None:
            try:
                client = GeminiTransformClient.from_settings(get_settings())
            except ConfigurationError as e:
                error(f"{e}. Set GOOGLE_API_KEY in the environment or .env")
                return EXIT_CONFIG

        return asyncio.run(self._edit(client, args.input, args.output, preset))

    def cmd_serve(self, args) -> int:
        import uvicorn

        from config import get_settings

        settings = get_settings()
        host = args.host or settings.HOST
        port = args.port or settings.PORT
        info(f"Backend:  http://{host}:{port}")
        info(f"API Docs: http://{host}:{port}/docs")
        print(f"\n{Colors.DIM}Press Ctrl+C to stop{Colors.RESET}\n")
        uvicorn.run("main:app", host=host, port=port, reload=args.reload)
        return EXIT_OK

    def cmd_presets(self, args) -> int:
        from services.edit_presets import DEFAULT_PRESET_NAME, PRESETS

        for name, preset in PRESETS.items():
            marker = " (default)" if name == DEFAULT_PRESET_NAME else ""
            print(f"{Colors.BOLD}{name}{Colors.RESET}{marker}: {preset.accessory_label}")
            print(f"  {Colors.DIM}{preset.instruction}{Colors.RESET}")
        return EXIT_OK

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        """Main entry point"""
        args = self.build_parser().parse_args(argv)
        handlers = {
            "edit": self.cmd_edit,
            "serve": self.cmd_serve,
            "presets": self.cmd_presets,
        }
        return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(PfpGeneratorCLI().run())
