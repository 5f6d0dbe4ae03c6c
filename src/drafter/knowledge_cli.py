"""CLI for managing knowledge files held by the Anthropic Files API.

Uploaded files ground every generated reply once their ids are listed in
the ``KNOWLEDGE_FILE_IDS`` setting.  ``upload`` prints that setting ready
to paste into ``.env``.

Usage::

    python -m drafter.knowledge_cli upload knowledge_base/pricing.md knowledge_base/faq.md
    python -m drafter.knowledge_cli list --format json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import anthropic
from anthropic import Anthropic

from drafter.config import get_settings
from drafter.llm.client import FILES_API_BETA, get_anthropic_client


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``upload`` and ``list`` commands.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Manage reply-drafter knowledge files")
    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Upload knowledge files")
    upload.add_argument("files", nargs="+", help="Markdown, text, or PDF files to upload")

    listing = commands.add_parser("list", help="List uploaded files")
    listing.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )

    return parser


def upload_files(client: Anthropic, paths: list[Path]) -> list[str]:
    """Upload each of *paths* and return the new file ids in order.

    Raises:
        FileNotFoundError: If any path does not exist (checked before uploading).
    """
    missing = [str(p) for p in paths if not p.is_file()]
    if missing:
        msg = f"Knowledge file(s) not found: {', '.join(missing)}"
        raise FileNotFoundError(msg)

    file_ids: list[str] = []
    for path in paths:
        uploaded = client.beta.files.upload(file=path, betas=[FILES_API_BETA])
        print(f"Uploaded {path} -> {uploaded.id}")
        file_ids.append(uploaded.id)
    return file_ids


def list_files(client: Anthropic) -> list[dict[str, Any]]:
    """Return id, filename, size and creation time of every uploaded file."""
    return [
        {
            "id": item.id,
            "filename": item.filename,
            "size_bytes": item.size_bytes,
            "created_at": str(item.created_at),
        }
        for item in client.beta.files.list(betas=[FILES_API_BETA])
    ]


def format_table(files: list[dict[str, Any]]) -> str:
    """Format file metadata as a plain table."""
    if not files:
        return "No files found."

    headers = ["ID", "Filename", "Size", "Created"]
    widths = [36, 32, 10, 25]
    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))]
    lines.append("-" * len(lines[0]))
    for row in files:
        cells = [row["id"], row["filename"], str(row["size_bytes"]), row["created_at"]]
        lines.append("  ".join(str(c).ljust(w) for c, w in zip(cells, widths, strict=True)))
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the command, and return the exit code."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    client = get_anthropic_client(settings.anthropic_api_key.get_secret_value() or None)

    try:
        if args.command == "upload":
            file_ids = upload_files(client, [Path(f) for f in args.files])
            print(f"KNOWLEDGE_FILE_IDS={','.join(file_ids)}")
        else:
            files = list_files(client)
            if args.output_format == "json":
                print(json.dumps(files, indent=2))
            else:
                print(format_table(files))
    except (FileNotFoundError, anthropic.APIError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
