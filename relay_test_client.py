#!/usr/bin/env python3
"""
Interactive test client for the farmrelay WebSocket relay.

Connects as a host or as a user, prints every event it receives, and sends
events typed on stdin.

Usage:
    python relay_test_client.py ws://localhost:5050 --host-id H1
    python relay_test_client.py ws://localhost:5050 --user-id u1 --email me@example.com

The token is minted locally with --secret (defaults to $JWT_SECRET or the dev
secret), so the client only works against a relay sharing that secret.

Commands (while connected):
    online <address>                    host: printer came online
    offline <address>                   host: printer went offline
    status <address> <json>             host: printer status, e.g. {"type": "Printing"}
    temp <address> <json>              host: temperature reading for the room
    join <address> / leave <address>    any: subscribe to a printer's room
    command <address> <type> [json]     user: send a command to the printer's room
    quit / exit
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime

try:
    import websockets
except ImportError:
    print("Error: 'websockets' package not installed.")
    print("Install it with: pip install websockets")
    sys.exit(1)

from farmrelay.core.auth import encode_token


def format_timestamp(ts: str | None) -> str:
    if not ts:
        return "-"
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00")).strftime("%H:%M:%S")
    except ValueError:
        return ts


def _json_arg(text: str) -> dict:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError("expected a JSON object")
    return value


def parse_command(line: str, host_id: str | None = None) -> dict | None:
    """
    Turn a typed command into a relay frame. Returns None for blank input.
    Raises ValueError for anything it cannot understand.
    """
    parts = line.strip().split(maxsplit=2)
    if not parts:
        return None

    verb = parts[0].lower()
    if len(parts) < 2:
        raise ValueError(f"{verb}: missing address")
    address = parts[1]
    rest = parts[2] if len(parts) > 2 else ""

    if verb in ("online", "offline"):
        data = {"remoteAddress": address, "type": "printer"}
        if host_id:
            data["hostId"] = host_id
        return {"event": verb, "data": data}

    if verb == "status":
        if not rest:
            raise ValueError("status: missing status JSON")
        return {"event": "status", "data": {"remoteAddress": address, "type": "printer", "status": _json_arg(rest)}}

    if verb == "temp":
        reading = _json_arg(rest) if rest else {}
        return {"event": "temperature", "data": {**reading, "remoteAddress": address}}

    if verb in ("join", "leave"):
        return {"event": verb, "data": {"remoteAddress": address}}

    if verb == "command":
        cmd_type, _, params = rest.partition(" ")
        if not cmd_type:
            raise ValueError("command: missing command type")
        extra = _json_arg(params) if params.strip() else {}
        return {"event": "command", "data": {**extra, "remoteAddress": address, "type": cmd_type}}

    raise ValueError(f"unknown command: {verb}")


def print_frame(frame: dict) -> None:
    event = frame.get("event", "unknown")
    data = frame.get("data", {})

    print()
    print("=" * 60)
    if event == "status":
        state = "ONLINE" if data.get("online") else "OFFLINE" if "online" in data else "STATUS"
        print(f"🖨️  {state}: {data.get('remoteAddress', 'N/A')}")
        print(f"   Host: {data.get('hostId', 'N/A')}")
        print(f"   Status: {json.dumps(data.get('status'), default=str)}")
        if "connectedAt" in data:
            print(f"   Connected at: {format_timestamp(data.get('connectedAt'))}")
    elif event == "temperature":
        print(f"🌡️  TEMPERATURE: {data.get('remoteAddress', 'N/A')}")
        print(f"   {json.dumps(data, default=str)}")
    else:
        print(f"📨 {event.upper()}")
        print(f"   {json.dumps(data, indent=2, default=str)}")
    print("=" * 60)


async def receive_frames(websocket) -> None:
    try:
        async for message in websocket:
            try:
                print_frame(json.loads(message))
            except json.JSONDecodeError:
                print(f"\n⚠️  Received non-JSON message: {message}")
            print("\n[You] > ", end="", flush=True)
    except websockets.exceptions.ConnectionClosed as e:
        print(f"\n❌ Connection closed: {e}")


async def send_frames(websocket, host_id: str | None) -> None:
    loop = asyncio.get_running_loop()

    print("\n✅ Connected! Type a command and press Enter. 'quit' to disconnect.\n")

    while True:
        print("[You] > ", end="", flush=True)
        line = (await loop.run_in_executor(None, sys.stdin.readline)).strip()
        if not line:
            continue
        if line.lower() in ("quit", "exit"):
            print("👋 Disconnecting...")
            await websocket.close()
            break

        try:
            frame = parse_command(line, host_id)
        except ValueError as e:
            print(f"   ✗ {e}")
            continue
        if frame is None:
            continue

        try:
            await websocket.send(json.dumps(frame))
        except websockets.exceptions.ConnectionClosed:
            print("\n❌ Connection was closed")
            break
        print(f"   ✓ Sent {frame['event']}")


async def main(server_url: str, claims: dict, secret: str) -> None:
    token = encode_token(claims, secret=secret)
    ws_url = f"{server_url}/v1/relay/ws?token={token}"

    print(f"🔌 Connecting to: {server_url}/v1/relay/ws as {claims}")
    print("-" * 60)

    try:
        async with websockets.connect(ws_url) as websocket:
            receive_task = asyncio.create_task(receive_frames(websocket))
            send_task = asyncio.create_task(send_frames(websocket, claims.get("hostId")))

            done, pending = await asyncio.wait(
                [receive_task, send_task],
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    except websockets.exceptions.InvalidURI as e:
        print(f"❌ Invalid URI: {e}")
        print("   Make sure the server URL starts with ws:// or wss://")
    except websockets.exceptions.InvalidHandshake as e:
        print(f"❌ Handshake failed: {e}")
    except ConnectionRefusedError:
        print("❌ Connection refused. Is the relay running?")


def build_claims(args: argparse.Namespace) -> dict:
    if args.host_id:
        return {"hostId": args.host_id}
    claims = {"id": args.user_id}
    if args.email:
        claims["email"] = args.email
    return claims


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="farmrelay test client")
    parser.add_argument("server_url", help="e.g. ws://localhost:5050")
    role = parser.add_mutually_exclusive_group(required=True)
    role.add_argument("--host-id", help="connect as a host with this id")
    role.add_argument("--user-id", help="connect as a user with this id")
    parser.add_argument("--email", help="user email claim")
    parser.add_argument("--secret", default=os.getenv("JWT_SECRET", "dev_secret_change_me_before_deploying"))
    args = parser.parse_args()

    server_url = args.server_url.rstrip("/")
    if not server_url.startswith(("ws://", "wss://")):
        print("⚠️  Warning: URL should start with ws:// or wss://")
        print("   Assuming ws:// prefix...")
        server_url = f"ws://{server_url}"

    try:
        asyncio.run(main(server_url, build_claims(args), args.secret))
    except KeyboardInterrupt:
        print("\n\n👋 Interrupted by user. Goodbye!")
        sys.exit(0)
