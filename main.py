"""AniStream command line entry point."""

import argparse
import asyncio
import sys

from pydantic import ValidationError

from anistream import ANISTREAM_HEADER, log
from anistream.config import SettingsStore, get_config
from anistream.exceptions import AniStreamError
from anistream.list import ListCache, ListMutations, ListServiceClient
from anistream.models.anilist import MediaListStatus
from anistream.models.episode import EpisodeProgress, Provider
from anistream.providers import CrunchyrollClient, HidiveClient, ProviderClient

LIST_VALUE_ACTIONS = ("status", "score", "progress")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="anistream", description="Anime streaming and list tracking"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    providers = [provider.lower() for provider in Provider]

    connect = subparsers.add_parser("connect", help="Link a provider account")
    connect.add_argument("provider", choices=providers)
    connect.add_argument("user")
    connect.add_argument("password")

    episodes = subparsers.add_parser("episodes", help="List the episodes of a title")
    episodes.add_argument("provider", choices=providers)
    episodes.add_argument("anime_id", type=int, help="AniList id of the anime")
    episodes.add_argument("ref", help="Provider title id or URL")

    stream = subparsers.add_parser("stream", help="Resolve an episode stream")
    stream.add_argument("provider", choices=providers)
    stream.add_argument("ref", help="Provider episode id")

    list_parser = subparsers.add_parser("list", help="Change a list entry")
    list_parser.add_argument(
        "action",
        choices=["add", "delete", "status", "score", "progress", "rewatch"],
    )
    list_parser.add_argument("media_id", type=int)
    list_parser.add_argument("value", nargs="?")

    return parser


def create_provider(name: str) -> ProviderClient:
    """Create the client of a provider with the configured settings store."""
    config = get_config()
    store = SettingsStore(config.settings_file)

    match Provider(name.upper()):
        case Provider.CRUNCHYROLL:
            return CrunchyrollClient(store, config.crunchyroll)
        case Provider.HIDIVE:
            return HidiveClient(store, config.hidive)


async def run_provider_command(args: argparse.Namespace) -> int:
    async with create_provider(args.provider) as client:
        await client.create_session()

        if args.command == "connect":
            user = await client.connect(args.user, args.password)
            if user is None:
                log.error(f"AniStream: Could not connect to $$'{args.provider}'$$")
                return 1
            return 0

        if args.command == "episodes":
            episodes = await client.fetch_episodes(args.anime_id, args.ref)
            if episodes is None:
                log.error(f"AniStream: Title $$'{args.ref}'$$ could not be resolved")
                return 1
            for episode in episodes:
                print(f"{episode.episode_number:>4}  {episode.id}  {episode.title}")
            return 0

        stream = await client.fetch_stream(args.ref)
        if stream is None:
            log.error(f"AniStream: No stream available for $$'{args.ref}'$$")
            return 1
        print(stream.url)
        for language, url in stream.subtitles:
            print(f"{language}: {url}")
        return 0


async def run_list_command(args: argparse.Namespace) -> int:
    config = get_config()
    token = config.tracker.token.get_secret_value() if config.tracker.token else None
    client = ListServiceClient(token, config.tracker.api_url)
    mutations = ListMutations(
        client, ListCache(), revert_on_error=config.tracker.revert_on_error
    )

    try:
        match args.action:
            case "add":
                result = await mutations.add_to_list(args.media_id)
            case "delete":
                result = await mutations.delete_from_list(args.media_id)
            case "status":
                result = await mutations.update_status(
                    args.media_id, MediaListStatus(str(args.value).upper())
                )
            case "score":
                result = await mutations.update_score(args.media_id, float(args.value))
            case "progress":
                result = await mutations.update_progress(
                    EpisodeProgress(
                        provider=Provider.CRUNCHYROLL,
                        anime_id=args.media_id,
                        episode_number=int(args.value),
                    )
                )
            case _:
                result = await mutations.start_rewatching(args.media_id)
    finally:
        await client.close()

    log.success(f"AniStream: {args.action} $$'{args.media_id}'$$: {result}")
    return 0


async def run(argv: list[str] | None = None) -> int:
    """Main application entry point.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if (
        args.command == "list"
        and args.action in LIST_VALUE_ACTIONS
        and args.value is None
    ):
        parser.error(f"list {args.action} requires a value")
    log.info("\n" + ANISTREAM_HEADER)

    try:
        if args.command == "list":
            return await run_list_command(args)
        return await run_provider_command(args)
    except ValidationError as e:
        log.error(f"AniStream: Configuration validation error: {e}")
        return 1
    except ValueError as e:
        log.error(f"AniStream: Invalid value: {e}")
        return 1
    except AniStreamError as e:
        log.error(f"AniStream: {e}")
        return 1
    except ConnectionError as e:
        log.error(f"AniStream: Connection error: {e}")
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv (list[str] | None): Command-line arguments, defaults to ``sys.argv``.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    try:
        return asyncio.run(run(argv))
    except KeyboardInterrupt:
        log.info("AniStream: Application interrupted")
        return 0
    except Exception as e:
        log.error(f"AniStream: Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
