import argparse
import codecs
import logging
import sys
from typing import TextIO

import httpx

from app.core.settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8000/api/chat"
GENERATING_INDICATOR = "Generating..."


def stream_answer(
    client: httpx.Client,
    url: str,
    message: str,
    search_type: str = "rag",
    out: TextIO = sys.stdout,
    show_indicator: bool = True,
) -> str:
    """Post a question and write the answer to ``out`` as the bytes arrive."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    parts: list[str] = []
    waiting = show_indicator
    if waiting:
        out.write(GENERATING_INDICATOR)
        out.flush()

    with client.stream("POST", url, json={"message": message, "searchType": search_type}) as response:
        if response.status_code >= 400:
            response.read()
            if waiting:
                out.write("\r" + " " * len(GENERATING_INDICATOR) + "\r")
            raise httpx.HTTPStatusError(
                f"chat request failed ({response.status_code}): {response.text}",
                request=response.request,
                response=response,
            )
        for chunk in response.iter_bytes():
            text = decoder.decode(chunk)
            if not text:
                continue
            if waiting:
                out.write("\r" + " " * len(GENERATING_INDICATOR) + "\r")
                waiting = False
            parts.append(text)
            out.write(text)
            out.flush()

    tail = decoder.decode(b"", final=True)
    if tail:
        parts.append(tail)
        out.write(tail)
    out.write("\n")
    out.flush()
    return "".join(parts)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ask the chat relay a question and print the streamed answer."
    )
    parser.add_argument("message", help="Question to send.")
    parser.add_argument(
        "--web",
        action="store_true",
        help="Use the general research assistant instead of the space biology corpus.",
    )
    parser.add_argument(
        "--url",
        default=DEFAULT_URL,
        help=f"Chat endpoint (default: {DEFAULT_URL}).",
    )
    parser.add_argument(
        "--no-indicator",
        action="store_true",
        help="Do not print the generating indicator while waiting for the first chunk.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    args = parse_args(argv)
    search_type = "web" if args.web else "rag"
    with httpx.Client(timeout=get_settings().request_timeout_sec) as client:
        try:
            stream_answer(
                client,
                args.url,
                args.message,
                search_type=search_type,
                show_indicator=not args.no_indicator,
            )
        except httpx.HTTPError as exc:
            logger.error("%s", exc)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
