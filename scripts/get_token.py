#!/usr/bin/env python3
"""
Shopify OAuth helper - obtain the Admin API access token used by the sync.

Reads SHOPIFY_API_KEY, SHOPIFY_API_SECRET and SHOPIFY_SHOP_NAME from .env,
opens the install URL, catches the callback on localhost:3456 and prints
the SHOPIFY_ACCESS_TOKEN line to paste back into .env.

The redirect URL http://localhost:3456/callback must be listed under
"Allowed redirection URL(s)" in the app settings.
"""

import asyncio
import secrets
import sys
import os
import threading
import urllib.parse
import webbrowser
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Optional

import httpx

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from catalog_sync.config import settings
from catalog_sync.shopify import normalize_shop_domain

CALLBACK_PORT = 3456
REDIRECT_URI = f"http://localhost:{CALLBACK_PORT}/callback"
# write_files is needed for product image attachments
SCOPES = "read_products,write_products,read_files,write_files"


class CallbackHandler(BaseHTTPRequestHandler):
    """Receives the single OAuth redirect."""

    code: Optional[str] = None
    expected_state: str = ""

    def _reply(self, status: int, body: str) -> None:
        self.send_response(status)
        self.send_header("Content-type", "text/html")
        self.end_headers()
        self.wfile.write(body.encode())

    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        if parsed.path != "/callback":
            self._reply(404, "<h1>Not found</h1>")
            return

        params = urllib.parse.parse_qs(parsed.query)
        if params.get("state", [""])[0] != self.expected_state:
            self._reply(400, "<h1>State mismatch</h1>")
            return
        if "code" not in params:
            error = params.get("error", ["Missing authorization code"])[0]
            self._reply(400, f"<h1>Error: {error}</h1>")
            return

        CallbackHandler.code = params["code"][0]
        self._reply(200, "<h1>Authorized. Check your terminal for the access token.</h1>")

    def log_message(self, format, *args):
        pass  # Keep the terminal output clean


async def exchange_code_for_token(shop: str, code: str) -> dict:
    """Exchange the authorization code for a permanent access token."""
    async with httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0)) as client:
        response = await client.post(
            f"https://{shop}/admin/oauth/access_token",
            json={
                "client_id": settings.shopify_api_key,
                "client_secret": settings.shopify_api_secret,
                "code": code,
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json()


def main() -> int:
    shop = normalize_shop_domain(settings.shopify_shop_name)
    if not (settings.shopify_api_key and settings.shopify_api_secret and shop):
        print("Missing credentials. Set SHOPIFY_API_KEY, SHOPIFY_API_SECRET and SHOPIFY_SHOP_NAME in .env")
        return 1

    state = secrets.token_urlsafe(16)
    CallbackHandler.expected_state = state
    install_url = f"https://{shop}/admin/oauth/authorize?" + urllib.parse.urlencode({
        "client_id": settings.shopify_api_key,
        "scope": SCOPES,
        "redirect_uri": REDIRECT_URI,
        "state": state,
    })

    print(f"Shop:   {shop}")
    print(f"Scopes: {SCOPES}")
    print(f"\nIf the browser does not open, visit:\n{install_url}\n")

    server = HTTPServer(("localhost", CALLBACK_PORT), CallbackHandler)
    server_thread = threading.Thread(target=server.handle_request)
    server_thread.start()
    webbrowser.open(install_url)

    print("Waiting for authorization...")
    server_thread.join(timeout=120)
    server.server_close()

    if not CallbackHandler.code:
        print("Timed out without an authorization code. Did you click 'Install app'?")
        return 1

    try:
        result = asyncio.run(exchange_code_for_token(shop, CallbackHandler.code))
    except httpx.HTTPError as e:
        print(f"Token exchange failed: {e}")
        return 1

    if "access_token" not in result:
        print(f"Token exchange failed: {result}")
        return 1

    print("\nCopy this line into .env:\n")
    print(f"SHOPIFY_ACCESS_TOKEN={result['access_token']}")
    print(f"\nScopes granted: {result.get('scope', 'N/A')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
