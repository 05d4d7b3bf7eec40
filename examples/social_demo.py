"""
Walk through the main workflows against the local Firebase emulators.

    firebase emulators:start --only firestore,auth
    FIRESTORE_EMULATOR_HOST=localhost:8080 \
    FIREBASE_AUTH_EMULATOR_HOST=localhost:9099 \
    FIREBASE_API_KEY=fake-key \
    python examples/social_demo.py
"""

from functools import wraps
import asyncio
import logging

from firestore_social import SocialClient
from firestore_social import chats, live, social_graph


def async_decorator(f):
    """Decorator to allow calling an async function like a sync function"""
    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))
    return wrapper


@async_decorator
async def main():
    logging.basicConfig(level=logging.INFO)

    async with SocialClient.from_env() as social:
        # 1. Two accounts
        alice = await social.sign_up("alice@example.com", "secret123", "alice", "Alice A.")
        bob = await social.sign_up("bob@example.com", "secret123", "bob", "Bob B.")

        # 2. Alice follows Bob; Bob gets a notification
        await social_graph.follow(alice, bob.uid)

        with live.notifications_view(bob.uid) as inbox:
            inbox.wait_loaded(timeout=5)
            for notification in inbox.items:
                print(f"Bob's notification: {notification.message}")

        # 3. A chat with an unread counter
        chat = await chats.start_chat(alice, bob.uid)
        await social.send_message(alice, chat.id, "Hi Bob!")
        for summary in await chats.summarize(bob.uid, await chats.list_chats(bob.uid)):
            print(f"{summary.other_user.username}: {summary.chat.unread_for(bob.uid)} unread")

        social.sign_out(alice)
        social.sign_out(bob)


main()
