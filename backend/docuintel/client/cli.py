"""
Command line interface for DocuIntel.

    docuintel upload report.pdf --category finance [--title "Q3 report"] [--topic audit]
    docuintel search "quarterly revenue"
    docuintel list
    docuintel delete <doc_id> <file_url>

Reads DOCUINTEL_API_URL, DOCUINTEL_TOKEN, DOCUINTEL_OCR_LANG and
DOCUINTEL_EXTRACTION_TIMEOUT from the environment
(overridable with --api-url, --token, --ocr-lang and --timeout).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from functools import partial

from docuintel.client.api import ClientSession, DocuIntelClient
from docuintel.client.workflow import DEFAULT_TOPIC, UploadWorkflow, default_dispatcher
from docuintel.core.errors import DocuIntelError
from docuintel.processing.extractor import suggest_title
from docuintel.processing.strategies import DEFAULT_OCR_LANGUAGE, DEFAULT_TIMEOUT_SECONDS
from docuintel.schemas.documents import DocumentOut, SearchResponse

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
SNIPPET_CHARS = 160


def _print_document(doc: DocumentOut) -> None:
    snippet = " ".join(doc.content.split())[:SNIPPET_CHARS]
    print(f"• {doc.file_name}  [{doc.category} / {doc.topic}]")
    print(f"  ID:      {doc.id}")
    print(f"  URL:     {doc.file_url}")
    print(f"  Added:   {doc.created_at:%Y-%m-%d %H:%M} by {doc.user_email or doc.user_id}")
    if snippet:
        print(f"  Content: {snippet}...")
    print()


def _print_results(result: SearchResponse) -> None:
    if result.message:
        print(result.message)
    for doc in result.documents:
        _print_document(doc)
    if result.documents:
        print(f"{result.count} document(s)")


async def upload_cmd(client: DocuIntelClient, session: ClientSession, args: argparse.Namespace) -> None:
    factory = partial(default_dispatcher, language=args.ocr_lang, timeout=args.timeout)
    workflow = UploadWorkflow(client, dispatcher_factory=factory)
    doc = await workflow.upload(
        args.file,
        title=args.title or suggest_title(os.path.basename(args.file)),
        category=args.category,
        session=session,
        topic=args.topic,
    )
    print("File uploaded and indexed successfully!")
    _print_document(doc)


async def search_cmd(client: DocuIntelClient, session: ClientSession, args: argparse.Namespace) -> None:
    _print_results(await client.search(args.query, session))


async def list_cmd(client: DocuIntelClient, session: ClientSession, args: argparse.Namespace) -> None:
    _print_results(await client.list_all(session))


async def delete_cmd(client: DocuIntelClient, session: ClientSession, args: argparse.Namespace) -> None:
    result = await client.delete(args.doc_id, args.file_url, session)
    print(result.message)
    for warning in result.warnings:
        print(f"  warning: {warning}")


COMMANDS = {
    "upload": upload_cmd,
    "search": search_cmd,
    "list":   list_cmd,
    "delete": delete_cmd,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docuintel", description="Upload and search documents")
    parser.add_argument("--api-url", default=os.environ.get("DOCUINTEL_API_URL", DEFAULT_API_URL))
    parser.add_argument("--token", default=os.environ.get("DOCUINTEL_TOKEN", ""),
                        help="Bearer access token (default: $DOCUINTEL_TOKEN)")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upload_parser = subparsers.add_parser("upload", help="Extract, store and index a file")
    upload_parser.add_argument("file", help="PDF, PNG, JPG, JPEG or DOCX file")
    upload_parser.add_argument("-c", "--category", required=True)
    upload_parser.add_argument("-t", "--title", help="Display title (default: file name without extension)")
    upload_parser.add_argument("--topic", default=DEFAULT_TOPIC)
    upload_parser.add_argument("--ocr-lang", default=os.environ.get("DOCUINTEL_OCR_LANG", DEFAULT_OCR_LANGUAGE),
                               help="Tesseract language for images (default: $DOCUINTEL_OCR_LANG or eng)")
    upload_parser.add_argument("--timeout", type=float,
                               default=float(os.environ.get("DOCUINTEL_EXTRACTION_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)),
                               help="Seconds allowed per extraction (default: $DOCUINTEL_EXTRACTION_TIMEOUT)")

    search_parser = subparsers.add_parser("search", help="Full-text search over your documents")
    search_parser.add_argument("query")

    subparsers.add_parser("list", help="List all your documents, newest first")

    delete_parser = subparsers.add_parser("delete", help="Delete a document (admin role)")
    delete_parser.add_argument("doc_id")
    delete_parser.add_argument("file_url")

    return parser


async def run(args: argparse.Namespace) -> int:
    session = ClientSession(access_token=args.token)
    async with DocuIntelClient(args.api_url) as client:
        try:
            await COMMANDS[args.command](client, session, args)
        except DocuIntelError as exc:
            print(f"Error ({exc.kind}): {exc.message}", file=sys.stderr)
            return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
