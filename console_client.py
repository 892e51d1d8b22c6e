#!/usr/bin/env python3
"""
Lightweight console client for the Moderation Gateway.

Usage:
    python console_client.py "Your prompt here"
    python console_client.py "Tell me about AI" gpt-4o-mini
    python console_client.py "Tell me about AI" gpt-4o-mini --no-stream
"""

import json
import os
import sys
import uuid

import requests

API_URL = os.getenv("GATEWAY_URL", "http://localhost:8000/v1/chat/completions")


def _print_error(error: dict) -> None:
    print(f"\n❌ {error.get('type', 'error')} ({error.get('code')}): {error.get('message')}", file=sys.stderr)
    if error.get("details"):
        print(f"   details: {error['details']}", file=sys.stderr)


def chat(prompt: str, model: str, auth_key: str, stream: bool = True, request_id: str | None = None):
    """Send a prompt through the gateway and render the answer to the console."""

    headers = {
        "Content-Type": "application/json",
        "Accept": "text/event-stream" if stream else "application/json",
        "Authorization": f"Bearer {auth_key}",
        "X-Request-ID": request_id or f"req_{uuid.uuid4().hex[:16]}",
    }

    payload = {
        "model": model,
        "messages": [
            {"role": "user", "content": prompt},
        ],
        "stream": stream,
    }

    print(f"\n{'='*80}")
    print(f"PROMPT: {prompt}")
    print(f"REQUEST ID: {headers['X-Request-ID']}")
    print(f"{'='*80}\n")

    try:
        with requests.post(API_URL, headers=headers, json=payload, stream=stream, timeout=120) as response:
            if not stream:
                body = response.json()
                if "error" in body:
                    _print_error(body["error"])
                    return
                print(body["choices"][0]["message"]["content"])
                return

            if response.status_code != 200:
                _print_error(response.json().get("error", {}))
                return

            for line in response.iter_lines():
                if not line:
                    continue
                decoded_line = line.decode("utf-8")
                if not decoded_line.startswith("data:"):
                    continue

                event_data = decoded_line[5:].strip()
                if event_data == "[DONE]":
                    break

                try:
                    event_json = json.loads(event_data)
                except json.JSONDecodeError as e:
                    print(f"\n❌ JSON Parse Error: {e}", file=sys.stderr)
                    continue

                # Moderation rejections and upstream failures arrive in-band
                if "error" in event_json:
                    _print_error(event_json["error"])
                    return

                if event_json.get("choices"):
                    choice = event_json["choices"][0]
                    content = choice.get("delta", {}).get("content")
                    if content:
                        print(content, end="", flush=True)
                    if choice.get("finish_reason"):
                        print(f"\n\n{'='*80}")
                        print(f"Finish: {choice['finish_reason']}")
                        print(f"{'='*80}\n")

    except requests.exceptions.RequestException as e:
        print(f"\n❌ Request failed: {e}", file=sys.stderr)
        return


if __name__ == "__main__":
    args = [arg for arg in sys.argv[1:] if arg != "--no-stream"]
    if not args:
        print("Usage: python console_client.py <prompt> [model] [--no-stream]")
        print("\nExamples:")
        print('  python console_client.py "Hello, world!"')
        print('  python console_client.py "Tell me about AI" gpt-4o-mini --no-stream')
        sys.exit(1)

    auth_key = os.getenv("GATEWAY_AUTH_KEY")
    if not auth_key:
        print("ERROR: GATEWAY_AUTH_KEY environment variable not set", file=sys.stderr)
        sys.exit(1)

    prompt = args[0]
    model = args[1] if len(args) > 1 else "gpt-4o-mini"

    chat(prompt, model, auth_key, stream="--no-stream" not in sys.argv)
