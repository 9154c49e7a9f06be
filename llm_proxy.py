#!/usr/bin/env python3
"""Flask proxy that answers form-encoded prompts with a GPT completion.

Run:
    GPT_KEY=secret OPENAI_API_KEY=sk-... python llm_proxy.py --port 8080

Then:
    curl -d key=secret -d command="Hello" http://localhost:8080/api/gpt

A valid request always gets 200 with either {"answer": ...} or {"error": ...};
a wrong key or empty command gets 400, any other path 404.
"""
from __future__ import annotations

import argparse
import hmac
import json
import logging
import sys

from flask import Flask, request
from pydantic import ValidationError

from llm_client import CompletionClient, UpstreamError
from llm_settings import Settings, load_settings

logger = logging.getLogger(__name__)

GPT_PATH = "/api/gpt"


def _text(body: str, status: int):
    return body, status, {"Content-Type": "text/plain; charset=utf-8"}


def _json(app: Flask, field: str, value: str):
    body = json.dumps({field: value}, ensure_ascii=False)
    return app.response_class(body, status=200, mimetype="application/json")


def _key_matches(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def create_app(settings: Settings, client: CompletionClient) -> Flask:
    app = Flask(__name__, static_folder=None)
    app.config["GPT_SETTINGS"] = settings
    app.extensions["gpt_client"] = client

    def ask():
        key = request.values.get("key", "")
        if not _key_matches(key, settings.access_key):
            logger.warning("Rejected request with incorrect key from %s", request.remote_addr)
            logger.info("%s %s -> 400 incorrect key", request.method, request.path)
            return _text("incorrect key", 400)

        command = request.values.get("command", "")
        if command == "":
            logger.info("%s %s -> 400 empty command", request.method, request.path)
            return _text("Command is required", 400)

        try:
            answer = client.ask(command)
        except UpstreamError as e:
            logger.warning("Completion failed: %s", e)
            logger.info("%s %s -> 200 error", request.method, request.path)
            return _json(app, "error", str(e))

        logger.info("%s %s -> 200 answer (%d chars)", request.method, request.path, len(answer))
        return _json(app, "answer", answer)

    routes = {GPT_PATH: ask}

    # Dispatch before URL matching so every method, OPTIONS and TRACE included, reaches the view.
    @app.before_request
    def dispatch_by_path():
        view = routes.get(request.path)
        if view is not None:
            return view()
        return None

    @app.errorhandler(404)
    def unsupported_path(_err):
        return _text("Unsupported path", 404)

    return app


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="GPT form proxy")
    parser.add_argument("--port", type=int, default=8080, help="port to run the server on")
    parser.add_argument("--host", default="0.0.0.0", help="interface to bind")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ValidationError:
        return 1

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(settings, CompletionClient(settings))
    print(f"Server is running on http://localhost:{args.port}", flush=True)
    app.run(host=args.host, port=args.port, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
