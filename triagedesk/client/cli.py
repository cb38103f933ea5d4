"""
Terminal Chat
=============

Interactive front end for the support chat.

Usage:
    python -m triagedesk.client [--api-url http://localhost:3000]

Commands while chatting: /escalate, /urgent, /quit
"""

import argparse
import asyncio
from typing import Callable, Optional

from triagedesk.config import MAX_RATING, MIN_RATING, settings
from triagedesk.core import SupportAPIError, ValidationException
from triagedesk.client.api import SupportAPIClient
from triagedesk.client.session import ChatSession, ChatState

Prompt = Callable[[str], str]


async def send_turn(session: ChatSession, api: SupportAPIClient, text: str) -> str:
    """Drive one turn: optimistic append, request, then reply or inline error."""
    payload = session.begin_turn(text)
    try:
        ai_message = await api.chat(payload)
    except SupportAPIError as e:
        session.fail_turn(e.error)
        return session.turns[-1].content

    session.complete_turn(ai_message)
    return ai_message["content"]


async def submit_review(
    session: ChatSession,
    api: SupportAPIClient,
    rating: int,
    comment: str
) -> str:
    """Send the review for an awaiting-review session and close it."""
    session.request_review()
    message = await api.resolve(session.ticket_id, rating, comment)
    session.mark_reviewed()
    return message


def _ask_rating(prompt: Prompt) -> int:
    while True:
        raw = prompt(f"Rate your experience ({MIN_RATING}-{MAX_RATING}): ").strip()
        if raw.isdigit() and MIN_RATING <= int(raw) <= MAX_RATING:
            return int(raw)
        print(f"Please enter a number between {MIN_RATING} and {MAX_RATING}.")


async def run(api: SupportAPIClient, prompt: Prompt = input) -> None:
    session = ChatSession()

    print("Get Started - please provide your details to begin.")
    while session.state == ChatState.NO_USER_INFO:
        name = prompt("Full Name: ").strip()
        email = prompt("Email Address: ").strip()
        phone = prompt("Phone Number (Optional): ").strip()
        try:
            session.start(name, email, phone or None)
        except ValidationException as e:
            print(e.message)

    print(f"Support: {session.turns[0].content}")

    while session.state == ChatState.COLLECTING_TURNS:
        text = prompt("You: ").strip()
        if not text:
            continue
        if text == "/quit":
            return

        if text in ("/escalate", "/urgent"):
            if not session.can_escalate:
                print("A ticket is opened after your first message.")
                continue
            try:
                if text == "/escalate":
                    print(await api.escalate(session.ticket_id))
                else:
                    print(await api.mark_urgent(session.ticket_id))
            except SupportAPIError as e:
                print(f"Error: {e.error}")
            continue

        reply = await send_turn(session, api, text)
        print(f"Support: {reply}")

    answer = prompt("Sorted the problem out? Leave a review [y/N]: ").strip().lower()
    if answer != "y":
        return

    rating = _ask_rating(prompt)
    comment = prompt("Tell us about your experience: ")
    try:
        print(await submit_review(session, api, rating, comment))
        print("Thank you for your feedback!")
    except SupportAPIError as e:
        print(f"Error: {e.error}")


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(description="TriageDesk terminal chat")
    parser.add_argument("--api-url", default=settings.api_base_url, help="Support API base URL")
    args = parser.parse_args(argv)

    async def _main() -> None:
        async with SupportAPIClient(base_url=args.api_url) as api:
            await run(api)

    try:
        asyncio.run(_main())
    except (KeyboardInterrupt, EOFError):
        print()
