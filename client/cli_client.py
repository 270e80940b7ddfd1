#!/usr/bin/env python3
"""
CLI Client for GMA Encrypted Messaging

Provides a command-line interface for:
- Deriving a key pair from username and password
- Registering the public key with the key server
- Computing the shared secret with another user
- Encrypting and decrypting messages with that secret
"""

import asyncio
import base64
import getpass
import os
import sys
from typing import Optional
import httpx
from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout

from gma_crypto import GmaCrypto, GmaCryptoError, KeyPair

DEFAULT_SERVER_URL = "http://localhost:8000"

HELP_TEXT = """Commands:
  /keygen <username> - Derive your key pair (asks for password)
  /register - Upload your public key to the server
  /secret <user_id> - Compute the shared secret with a user
  /encrypt <text> - Encrypt text with the current secret
  /decrypt <base64> - Decrypt a message with the current secret
  /help - Show this help
  /quit - Quit application"""


class CryptoShell:
    """
    Interactive shell around a GmaCrypto instance.
    """

    def __init__(self, server_url: str = DEFAULT_SERVER_URL):
        """
        Initialize the shell.

        Args:
            server_url: Base URL of the key server
        """
        self.server_url = server_url
        self.gma = GmaCrypto(server_url)
        self.username: Optional[str] = None
        self.key_pair: Optional[KeyPair] = None
        self.peer_id: Optional[int] = None
        self.secret: Optional[bytes] = None
        self.running = False

    async def keygen(self, username: str, password: str):
        self.key_pair = await self.gma.generate_key_pair(username, password)
        self.username = username
        print(f"Key pair ready for {username} ({len(self.key_pair.public_key) * 8}-bit public key)")

    async def register(self):
        """Upload our public key with POST /users"""
        if not self.key_pair:
            print("No key pair. Use /keygen <username> first.")
            return

        async with httpx.AsyncClient() as http_client:
            response = await http_client.post(
                f"{self.server_url.rstrip('/')}/users",
                json={
                    "username": self.username,
                    "publicKey": base64.b64encode(self.key_pair.public_key).decode()
                }
            )

        if response.status_code == 200:
            print(f"Registered as user {response.json()['id']}")
        else:
            print(f"Registration failed: {response.json().get('detail', 'Unknown error')}")

    async def compute_secret(self, user_id: int):
        if not self.key_pair:
            print("No key pair. Use /keygen <username> first.")
            return

        self.secret = await self.gma.compute_shared_secret(self.key_pair.private_key, user_id)
        self.peer_id = user_id
        print(f"Shared secret with user {user_id} ready")

    def encrypt(self, text: str):
        if not self.secret:
            print("No shared secret. Use /secret <user_id> first.")
            return
        print(GmaCrypto.encrypt(text, self.secret))

    def decrypt(self, token: str):
        if not self.secret:
            print("No shared secret. Use /secret <user_id> first.")
            return

        plaintext = GmaCrypto.decrypt(token, self.secret)
        if plaintext is None:
            print("Could not decrypt: wrong secret")
        else:
            print(plaintext)

    async def run_interactive(self):
        """Run interactive session"""
        self.running = True
        session = PromptSession()

        print(HELP_TEXT)
        print()

        try:
            while self.running:
                try:
                    prompt_text = f"[{self.username}] > " if self.username else "> "

                    with patch_stdout():
                        user_input = await session.prompt_async(prompt_text)

                    if not user_input:
                        continue

                    if user_input.startswith("/"):
                        await self._handle_command(user_input)
                    else:
                        print("Unknown input. Type /help for help.")

                except GmaCryptoError as e:
                    print(f"Error: {e}")
                except httpx.HTTPError as e:
                    print(f"Server error: {e}")
                except KeyboardInterrupt:
                    break
                except EOFError:
                    break

        finally:
            self.running = False
            await self.gma.aclose()

    async def _handle_command(self, command: str):
        """Handle slash commands"""
        parts = command.split(maxsplit=1)
        cmd = parts[0].lower()

        if cmd == "/keygen" and len(parts) == 2:
            password = getpass.getpass("Password: ")
            await self.keygen(parts[1], password)
        elif cmd == "/register":
            await self.register()
        elif cmd == "/secret" and len(parts) == 2:
            if not parts[1].isdigit():
                print("User ID must be a number")
                return
            await self.compute_secret(int(parts[1]))
        elif cmd == "/encrypt" and len(parts) == 2:
            self.encrypt(parts[1])
        elif cmd == "/decrypt" and len(parts) == 2:
            self.decrypt(parts[1])
        elif cmd == "/quit":
            self.running = False
        elif cmd == "/help":
            print(HELP_TEXT)
        else:
            print("Unknown command. Type /help for help.")


async def main():
    """Main entry point"""
    shell = CryptoShell(os.environ.get("GMA_SERVER_URL", DEFAULT_SERVER_URL))

    print("=" * 50)
    print("GMA Encrypted Messaging Client")
    print("=" * 50)
    print()

    await shell.run_interactive()

    print("\nGoodbye!")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(0)
