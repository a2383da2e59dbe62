"""Command-line entry point for the Gmail adapter."""

import argparse
import json
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from gmail_adapter import __version__
from gmail_adapter.config import load_config
from gmail_adapter.errors import GmailAdapterError
from gmail_adapter.gmail_client import GmailClient
from gmail_adapter.service import GmailService

logger = logging.getLogger("gmail_adapter")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gmail adapter")
    parser.add_argument(
        "--config",
        help="Path to configuration file",
        default=os.environ.get("GMAIL_ADAPTER_CONFIG"),
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"gmail-adapter {__version__}",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List recent emails")
    list_cmd.add_argument("--query", default="")
    list_cmd.add_argument("--max-results", type=int)
    list_cmd.add_argument("--include-spam-trash", action="store_true")

    search_cmd = commands.add_parser("search", help="Search emails")
    search_cmd.add_argument("query")
    search_cmd.add_argument("--max-results", type=int)
    search_cmd.add_argument("--include-spam-trash", action="store_true")

    get_cmd = commands.add_parser("get", help="Show one email")
    get_cmd.add_argument("email_id")
    get_cmd.add_argument(
        "--format", default="full", choices=["full", "minimal", "metadata"]
    )

    for name, help_text in (("send", "Send an email"), ("draft", "Create a draft")):
        cmd = commands.add_parser(name, help=help_text)
        cmd.add_argument("--to", required=True)
        cmd.add_argument("--subject", required=True)
        cmd.add_argument("--body", required=True)
        cmd.add_argument("--cc")
        cmd.add_argument("--bcc")
        if name == "draft":
            cmd.add_argument("--thread-id")
            cmd.add_argument("--in-reply-to")

    reply_cmd = commands.add_parser(
        "reply", help="Draft a threaded reply to the latest email from a sender"
    )
    reply_cmd.add_argument("sender")
    reply_cmd.add_argument("--body")

    extract_cmd = commands.add_parser(
        "extract", help="Extract the original content of a forwarded email"
    )
    extract_cmd.add_argument("email_id")
    extract_cmd.add_argument("--include-html", action="store_true", default=None)
    extract_cmd.add_argument("--max-depth", type=int)

    return parser


def _dispatch(service: GmailService, args: argparse.Namespace) -> Any:
    handlers: Dict[str, Callable[[], Any]] = {
        "list": lambda: service.list_emails(
            max_results=args.max_results,
            query=args.query,
            include_spam_trash=args.include_spam_trash,
        ),
        "search": lambda: service.search_emails(
            args.query,
            max_results=args.max_results,
            include_spam_trash=args.include_spam_trash,
        ),
        "get": lambda: service.get_email_details(args.email_id, format=args.format),
        "send": lambda: service.send_email(
            args.to, args.subject, args.body, cc=args.cc, bcc=args.bcc
        ),
        "draft": lambda: service.create_draft(
            args.to,
            args.subject,
            args.body,
            cc=args.cc,
            bcc=args.bcc,
            thread_id=args.thread_id,
            in_reply_to_message_id=args.in_reply_to,
        ),
        "reply": lambda: service.find_and_draft_reply(args.sender, reply_body=args.body),
        "extract": lambda: service.extract_forwarded_content(
            args.email_id, include_html=args.include_html, max_depth=args.max_depth
        ),
    }
    return handlers[args.command]()


def run(
    argv: Optional[List[str]] = None, service: Optional[GmailService] = None
) -> int:
    """Run a command and print its JSON result. Returns the exit code."""
    args = build_parser().parse_args(argv)

    if args.debug:
        logger.setLevel(logging.DEBUG)

    try:
        if service is None:
            config = load_config(args.config)
            service = GmailService(GmailClient(config), config)
        result = _dispatch(service, args)
    except ValidationError as e:
        messages = ", ".join(error["msg"] for error in e.errors())
        print(json.dumps({"error": f"Invalid input: {messages}"}, indent=2))
        return 2
    except (GmailAdapterError, ValueError) as e:
        logger.error(f"Command {args.command} failed: {e}")
        print(json.dumps({"error": str(e)}, indent=2))
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    sys.exit(run())


if __name__ == "__main__":
    main()
