"""
Example: Querying commit and user records with iterquery

Shows a query built once and reused: extended into new queries, rebound
to new sources, and used to gather async work per record with acollect().
"""

import asyncio
import logging

from iterquery import LoggingHook, explain, query, use_tracing

# =============================================================================
# Sample data (shaped like the GitHub API responses)
# =============================================================================


TERM_VIDEO_PLAYER = [
    {"sha": "9f1", "commit": {"author": {"date": "2024-02-01"}, "message": "Seek"}},
    {"sha": "7c2", "commit": {"author": {"date": "2024-01-20"}, "message": "Audio"}},
    {"sha": "1aa", "commit": {"author": {"date": "2023-12-30"}, "message": "Init"}},
]

DISCORD_RPC = [
    {"sha": "e41", "commit": {"author": {"date": "2024-03-03"}, "message": "Bump"}},
    {"sha": "b07", "commit": {"author": {"date": "2024-01-02"}, "message": "Docs"}},
]

USERS = [
    {"login": "ada", "id": 1, "events_url": "https://example.test/ada{/privacy}"},
    {"login": "alan", "id": 2, "events_url": "https://example.test/alan{/privacy}"},
]


# =============================================================================
# 1. Build once, extend and rebind
# =============================================================================


recent_commits = (
    query()
    .select("commit")
    .select(["author", "message"])
    .where(lambda c: c["author"]["date"] > "2024-01-12")
    .take(5)
    .build()
)


def show_commits() -> None:
    print("TermVideoPlayer commits")
    # Extending leaves recent_commits untouched
    recent_commits.extend().select("message").on(TERM_VIDEO_PLAYER).iforeach(
        lambda message, i: print(f"  {i}: {message}")
    )

    print("DiscordRPC commits")
    recent_commits.on(DISCORD_RPC).foreach(lambda c: print(f"  {c}"))

    print(explain(recent_commits))


# =============================================================================
# 2. Async enrichment with acollect
# =============================================================================


async def fetch_events(url: str) -> list[dict]:
    """Stand-in for an HTTP call."""
    await asyncio.sleep(0.01)
    return [{"type": "PushEvent", "repo": url, "n": n} for n in range(7)]


def public_events_url(user: dict) -> dict:
    user["events_url"] = user["events_url"].replace("{/privacy}", "/public")
    return user


user_info = (
    query()
    .select(["login", "id", "events_url"])
    .map(public_events_url)
    .build()
)


async def load_users() -> list[dict]:
    async def with_events(user: dict) -> dict:
        events = await fetch_events(user["events_url"])
        # The projected record is a fresh dict, safe to add fields to
        user["events"] = query().take(5).select("type").on(events).collect()
        return user

    return await user_info.on(USERS).acollect(with_events)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG, format="%(name)s %(message)s")
    show_commits()

    with use_tracing(LoggingHook(logging.getLogger("iterquery.example"))):
        for user in asyncio.run(load_users()):
            print(user["login"], user["events"])
