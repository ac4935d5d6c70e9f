"""
Operator CLI for the grounded Gemini proxy.

Architectural role:
- Lets an operator exercise the full pipeline from a terminal, either in-process
  (same code path as the HTTP adapter) or against a deployed endpoint.
- Starts the HTTP adapter under uvicorn.

Commands:
- `ask PROMPT`: run validation -> upstream call -> normalization locally and print
  the answer with numbered sources.
- `ask PROMPT --endpoint URL`: POST `{"prompt": ...}` to a deployed proxy instead.
- `serve`: run `grounded_proxy.api.http_api:app`.

Error handling strategy:
- Error envelopes are printed to stderr and mapped to exit status 1.
- Transport failures in remote mode are reported without traceback.

Side effects:
- Configures root logging. The `httpx` logger is held at WARNING because its
  INFO request lines include the full upstream URL, credential included.
"""

import argparse
import asyncio
import json
import logging
import sys

import requests

from grounded_proxy.core.engine import process_request
from grounded_proxy.core.types import InboundRequest, ProxyResponse
from grounded_proxy.llm.provider_config import ProxySettings


def configure_logging(verbose: bool = False) -> None:
    """Set up root logging for terminal use."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def ask_local(prompt: str, settings: ProxySettings) -> ProxyResponse:
    """Run one invocation in-process, exactly as the HTTP adapter would."""
    body = json.dumps({settings.prompt_field: prompt})
    return asyncio.run(process_request(InboundRequest(method="POST", raw_body=body), settings))


def ask_remote(prompt: str, endpoint: str, prompt_field: str = "prompt", timeout: float = 60.0) -> ProxyResponse:
    """POST the prompt to a deployed proxy and wrap its answer as a `ProxyResponse`."""
    response = requests.post(
        endpoint,
        json={prompt_field: prompt},
        headers={"Content-Type": "application/json"},
        timeout=timeout,
    )
    try:
        body = response.json()
    except ValueError:
        body = {"error": response.text.strip() or f"HTTP {response.status_code}"}
    if not isinstance(body, dict):
        body = {"error": f"Unexpected response body from {endpoint}"}
    return ProxyResponse(status_code=response.status_code, body=body)


def render(result: ProxyResponse, as_json: bool = False) -> int:
    """Print a result to stdout/stderr and return the process exit code."""
    if as_json:
        print(json.dumps({"status": result.status_code, **result.body}, indent=2))
        return 0 if result.status_code == 200 else 1

    if result.status_code != 200:
        print(f"Error ({result.status_code}): {result.body.get('error')}", file=sys.stderr)
        return 1

    print(result.body.get("text", ""))
    sources = result.body.get("sources") or []
    if sources:
        print("\nSources:")
        for number, source in enumerate(sources, start=1):
            print(f"  [{number}] {source.get('title')} - {source.get('uri')}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grounded-proxy",
        description="Grounded Gemini proxy: ask questions or run the HTTP server.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Send one prompt through the proxy pipeline")
    ask.add_argument("prompt", help="Question text")
    ask.add_argument("--endpoint", help="URL of a deployed proxy; omit to run in-process")
    ask.add_argument("--json", action="store_true", help="Print the raw JSON body")

    serve = sub.add_parser("serve", help="Run the HTTP adapter with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8888)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("grounded_proxy.api.http_api:app", host=args.host, port=args.port)
        return 0

    settings = ProxySettings.from_env()

    if args.endpoint:
        try:
            result = ask_remote(args.prompt, args.endpoint, settings.prompt_field)
        except requests.exceptions.RequestException as err:
            print(f"Request to {args.endpoint} failed: {type(err).__name__}", file=sys.stderr)
            return 1
    else:
        result = ask_local(args.prompt, settings)

    return render(result, as_json=args.json)


if __name__ == "__main__":
    sys.exit(main())
