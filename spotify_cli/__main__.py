"""
Command-line entry point.

Every sub-command maps to one dispatch method plus the names of the parsed
arguments that become its params. When the daemon is up the call is
forwarded over its socket, otherwise it runs in this process.
"""

import argparse
import logging
import sys

from . import APP_NAME, __version__, paths
from .commands import daemon
from .config import Config, ConfigError
from .formatters import FormatterRegistry
from .paths import PathError
from .rpc.client import DaemonUnavailable, call_daemon
from .rpc.dispatch import Dispatcher
from .search import DEFAULT_LIMIT, SEARCH_TYPES

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(module)s.%(funcName)s - %(message)s"

# Needs this process's terminal and browser.
LOCAL_ONLY = {"auth.login"}


def _output_options():
    """
    ``--json`` for leaf commands, so it may follow the command as well as
    precede it. Left unset unless given, to keep a leading ``--json``.
    """
    options = argparse.ArgumentParser(add_help=False)
    options.add_argument(
        "--json", action="store_true", default=argparse.SUPPRESS, help="Print the raw JSON response."
    )
    return options


OUTPUT_OPTIONS = _output_options()


def _command(subs, name, method, fields=(), help=None):
    sub = subs.add_parser(name, help=help, parents=[OUTPUT_OPTIONS])
    sub.set_defaults(method=method, fields=tuple(fields))
    return sub


def _add_paging(sub, limit=20):
    sub.add_argument("--limit", type=int, default=limit, help="Maximum number of items.")
    sub.add_argument("--offset", type=int, default=0, help="Index of the first item.")


def _add_dry_run(sub):
    sub.add_argument(
        "--dry-run", dest="dry_run", action="store_true", help="Show what would change."
    )


def _get_command(subs, group, resource):
    sub = _command(subs, "get", f"{group}.get", ("id",), help=f"Get {resource} details.")
    sub.add_argument("id", help=f"{resource.capitalize()} ID.")


def _list_command(subs, name, method, help):
    sub = _command(subs, name, method, ("limit", "offset"), help=help)
    _add_paging(sub)


def _ids_commands(subs, group, resource):
    for action, help in (
        ("save", f"Save {resource}s to your library."),
        ("remove", f"Remove {resource}s from your library."),
        ("check", f"Check whether {resource}s are saved."),
    ):
        sub = _command(subs, action, f"{group}.{action}", ("ids",), help=help)
        sub.add_argument("ids", nargs="+", help=f"{resource.capitalize()} IDs.")


def _children_command(subs, name, method, resource):
    sub = _command(subs, name, method, ("id", "limit", "offset"), help=f"List {name} of a {resource}.")
    sub.add_argument("id", help=f"{resource.capitalize()} ID.")
    _add_paging(sub)


def _add_auth(subs):
    group = subs.add_parser("auth", help="Log in and manage stored tokens.")
    auth = group.add_subparsers(title="auth commands", dest="action", required=True)
    login = _command(auth, "login", "auth.login", ("force",), help="Log in through the browser.")
    login.add_argument("--force", action="store_true", help="Ignore any stored token.")
    _command(auth, "logout", "auth.logout", help="Delete stored tokens.")
    _command(auth, "refresh", "auth.refresh", help="Refresh the access token.")
    _command(auth, "status", "auth.status", help="Show login state.")


def _add_player(subs):
    group = subs.add_parser("player", help="Control playback.")
    player = group.add_subparsers(title="player commands", dest="action", required=True)

    status = _command(player, "status", "player.status", ("id_only",), help="Show what is playing.")
    status.add_argument(
        "--id",
        dest="id_only",
        choices=["track", "album", "artist"],
        help="Print only this ID.",
    )

    play = _command(player, "play", "player.play", ("uri", "pin"), help="Start or resume playback.")
    play.add_argument("uri", nargs="?", help="Spotify URI or open.spotify.com URL.")
    play.add_argument("--pin", help="Play a pinned resource by alias.")

    for name, help in (
        ("pause", "Pause playback."),
        ("toggle", "Toggle play/pause."),
        ("next", "Skip to the next track."),
        ("previous", "Go back to the previous track."),
        ("devices", "List available devices."),
    ):
        _command(player, name, f"player.{name}", help=help)

    seek = _command(player, "seek", "player.seek", ("position",), help="Seek within the track.")
    seek.add_argument("position", help="Position: 90, 1:30, 1:02:03, 90s or 5000ms.")
    volume = _command(player, "volume", "player.volume", ("percent",), help="Set the volume.")
    volume.add_argument("percent", type=int, help="Volume 0-100.")
    shuffle = _command(player, "shuffle", "player.shuffle", ("state",), help="Turn shuffle on or off.")
    shuffle.add_argument("state", choices=["on", "off"])
    repeat = _command(player, "repeat", "player.repeat", ("mode",), help="Set the repeat mode.")
    repeat.add_argument("mode", choices=["off", "track", "context"])
    transfer = _command(player, "transfer", "player.transfer", ("device",), help="Move playback to a device.")
    transfer.add_argument("device", help="Device ID or part of its name.")
    recent = _command(player, "recent", "player.recent", ("limit",), help="Recently played tracks.")
    recent.add_argument("--limit", type=int, default=20)


def _add_queue(subs):
    group = subs.add_parser("queue", help="Show or extend the play queue.")
    queue = group.add_subparsers(title="queue commands", dest="action", required=True)
    _command(queue, "list", "queue.list", help="Show the queue.")
    add = _command(queue, "add", "queue.add", ("uri", "now_playing"), help="Add to the queue.")
    add.add_argument("uri", nargs="?", help="Track or episode URI.")
    add.add_argument("--now-playing", dest="now_playing", action="store_true", help="Queue the current track.")


def _add_search(subs):
    search = _command(
        subs,
        "search",
        "search",
        (
            "query", "types", "limit", "pins_only", "exact", "play",
            "artist", "album", "track", "year", "genre", "isrc", "upc", "new", "hipster",
        ),
        help="Search Spotify and your pins.",
    )
    search.add_argument("query", nargs="?", default="", help="Search text.")
    search.add_argument(
        "--type",
        dest="types",
        action="append",
        choices=SEARCH_TYPES,
        help="Restrict to a type; repeat for several. Default: all.",
    )
    search.add_argument("--limit", type=int, default=DEFAULT_LIMIT)
    search.add_argument("--pins-only", dest="pins_only", action="store_true", help="Only search pins.")
    search.add_argument("--exact", action="store_true", help="Only exact name matches.")
    search.add_argument("--play", action="store_true", help="Play the best match.")
    for name in ("artist", "album", "track", "year", "genre", "isrc", "upc"):
        search.add_argument(f"--{name}", help=f"Filter by {name}.")
    search.add_argument("--new", action="store_true", help="Albums released in the last two weeks.")
    search.add_argument("--hipster", action="store_true", help="Albums with the lowest 10%% popularity.")


def _add_pin(subs):
    group = subs.add_parser("pin", help="Manage pinned resources.")
    pin = group.add_subparsers(title="pin commands", dest="action", required=True)
    add = _command(pin, "add", "pin.add", ("type", "id", "alias", "tags"), help="Pin a resource.")
    add.add_argument("type", help="playlist, track, album, artist, show, episode or audiobook.")
    add.add_argument("id", help="Spotify URL or ID.")
    add.add_argument("alias", help="Name to find it by.")
    add.add_argument("--tags", help="Comma-separated tags.")
    remove = _command(pin, "remove", "pin.remove", ("id",), help="Remove a pin.")
    remove.add_argument("id", help="Alias or ID.")
    listing = _command(pin, "list", "pin.list", ("type",), help="List pins.")
    listing.add_argument("--type", help="Only pins of this type.")


def _add_playlist(subs):
    group = subs.add_parser("playlist", help="Manage playlists.")
    playlist = group.add_subparsers(title="playlist commands", dest="action", required=True)

    _add_paging(_command(playlist, "list", "playlist.list", ("limit", "offset"), help="List your playlists."))
    get = _command(playlist, "get", "playlist.get", ("id",), help="Show a playlist.")
    get.add_argument("id", help="Playlist ID, URL or exact name.")

    create = _command(playlist, "create", "playlist.create", ("name", "description", "public"), help="Create a playlist.")
    create.add_argument("name")
    create.add_argument("--description")
    create.add_argument("--public", action="store_true", help="Make it public.")

    add = _command(
        playlist,
        "add",
        "playlist.add",
        ("id", "uris", "now_playing", "position", "dry_run"),
        help="Add tracks to a playlist.",
    )
    add.add_argument("id", help="Playlist ID, URL or exact name.")
    add.add_argument("uris", nargs="*", help="Track URIs.")
    add.add_argument("--now-playing", dest="now_playing", action="store_true", help="Add the current track.")
    add.add_argument("--position", type=int, help="Insert at this index.")
    _add_dry_run(add)

    remove = _command(playlist, "remove", "playlist.remove", ("id", "uris", "dry_run"), help="Remove tracks.")
    remove.add_argument("id", help="Playlist ID, URL or exact name.")
    remove.add_argument("uris", nargs="+", help="Track URIs.")
    _add_dry_run(remove)

    edit = _command(playlist, "edit", "playlist.edit", ("id", "name", "description", "public"), help="Edit details.")
    edit.add_argument("id", help="Playlist ID, URL or exact name.")
    edit.add_argument("--name")
    edit.add_argument("--description")
    visibility = edit.add_mutually_exclusive_group()
    visibility.add_argument("--public", dest="public", action="store_const", const=True)
    visibility.add_argument("--private", dest="public", action="store_const", const=False)

    reorder = _command(
        playlist,
        "reorder",
        "playlist.reorder",
        ("id", "range_start", "insert_before", "range_length"),
        help="Move a range of tracks.",
    )
    reorder.add_argument("id", help="Playlist ID, URL or exact name.")
    reorder.add_argument("--from", dest="range_start", type=int, required=True, help="First index to move.")
    reorder.add_argument("--to", dest="insert_before", type=int, required=True, help="Insert before this index.")
    reorder.add_argument("--length", dest="range_length", type=int, default=1)

    follow = _command(playlist, "follow", "playlist.follow", ("id", "public"), help="Follow a playlist.")
    follow.add_argument("id", help="Playlist ID or URL.")
    follow.add_argument("--private", dest="public", action="store_false", help="Hide it from your profile.")
    unfollow = _command(playlist, "unfollow", "playlist.unfollow", ("id",), help="Unfollow a playlist.")
    unfollow.add_argument("id", help="Playlist ID, URL or exact name.")

    duplicate = _command(playlist, "duplicate", "playlist.duplicate", ("id", "name"), help="Copy a playlist.")
    duplicate.add_argument("id", help="Playlist ID, URL or exact name.")
    duplicate.add_argument("--name", help="Name of the copy.")

    dedup = _command(
        playlist, "deduplicate", "playlist.deduplicate", ("id", "dry_run"), help="Remove duplicate tracks."
    )
    dedup.add_argument("id", help="Playlist ID, URL or exact name.")
    _add_dry_run(dedup)

    cover = _command(playlist, "cover", "playlist.cover", ("id",), help="Show the cover image URL.")
    cover.add_argument("id", help="Playlist ID, URL or exact name.")
    user = _command(playlist, "user", "playlist.user", ("user_id",), help="A user's public playlists.")
    user.add_argument("user_id")


def _add_library(subs):
    group = subs.add_parser("library", help="Your saved tracks.")
    library = group.add_subparsers(title="library commands", dest="action", required=True)
    _add_paging(_command(library, "list", "library.list", ("limit", "offset"), help="List saved tracks."))
    save = _command(library, "save", "library.save", ("ids", "now_playing", "dry_run"), help="Save tracks.")
    save.add_argument("ids", nargs="*", help="Track IDs.")
    save.add_argument("--now-playing", dest="now_playing", action="store_true", help="Save the current track.")
    _add_dry_run(save)
    remove = _command(library, "remove", "library.remove", ("ids", "dry_run"), help="Remove saved tracks.")
    remove.add_argument("ids", nargs="+", help="Track IDs.")
    _add_dry_run(remove)
    check = _command(library, "check", "library.check", ("ids",), help="Check whether tracks are saved.")
    check.add_argument("ids", nargs="+", help="Track IDs.")


def _add_info(subs):
    group = subs.add_parser("info", help="Details for the current or a given item.")
    info = group.add_subparsers(title="info commands", dest="action", required=True)
    for name in ("track", "album"):
        sub = _command(info, name, f"info.{name}", ("id", "id_only"), help=f"{name.capitalize()} details.")
        sub.add_argument("id", nargs="?", help=f"{name.capitalize()} ID; default: now playing.")
        sub.add_argument("--id-only", dest="id_only", action="store_true")

    artist = _command(
        info,
        "artist",
        "info.artist",
        ("id", "id_only", "view", "market", "limit", "offset"),
        help="Artist details.",
    )
    artist.add_argument("id", nargs="?", help="Artist ID; default: now playing.")
    artist.add_argument("--id-only", dest="id_only", action="store_true")
    views = artist.add_mutually_exclusive_group()
    views.add_argument("--top", dest="view", action="store_const", const="top", help="Top tracks.")
    views.add_argument("--albums", dest="view", action="store_const", const="albums", help="Discography.")
    views.add_argument("--related", dest="view", action="store_const", const="related", help="Related artists.")
    artist.add_argument("--market", default="US")
    _add_paging(artist)

    lookup = _command(
        info, "lookup", "info.lookup", ("query", "play"), help="Details for the best match of a query."
    )
    lookup.add_argument("query", help="Track, album, artist or playlist name.")
    lookup.add_argument("--play", action="store_true", help="Also play it.")


def _add_user(subs):
    group = subs.add_parser("user", help="User profiles and top items.")
    user = group.add_subparsers(title="user commands", dest="action", required=True)
    _command(user, "profile", "user.profile", help="Your profile.")
    top = _command(user, "top", "user.top", ("type", "range", "limit"), help="Your top tracks or artists.")
    top.add_argument("type", nargs="?", default="tracks", choices=["tracks", "artists"])
    top.add_argument("--range", default="medium", choices=["short", "medium", "long"])
    top.add_argument("--limit", type=int, default=20)
    get = _command(user, "get", "user.get", ("id",), help="Another user's profile.")
    get.add_argument("id", help="User ID.")


def _add_resources(subs):
    group = subs.add_parser("show", help="Podcasts.")
    show = group.add_subparsers(title="show commands", dest="action", required=True)
    _get_command(show, "show", "show")
    _children_command(show, "episodes", "show.episodes", "show")
    _list_command(show, "list", "show.list", "List saved shows.")
    _ids_commands(show, "show", "show")

    group = subs.add_parser("episode", help="Podcast episodes.")
    episode = group.add_subparsers(title="episode commands", dest="action", required=True)
    _get_command(episode, "episode", "episode")
    _list_command(episode, "list", "episode.list", "List saved episodes.")
    _ids_commands(episode, "episode", "episode")

    group = subs.add_parser("audiobook", help="Audiobooks.")
    audiobook = group.add_subparsers(title="audiobook commands", dest="action", required=True)
    _get_command(audiobook, "audiobook", "audiobook")
    _children_command(audiobook, "chapters", "audiobook.chapters", "audiobook")
    _list_command(audiobook, "list", "audiobook.list", "List saved audiobooks.")
    _ids_commands(audiobook, "audiobook", "audiobook")

    group = subs.add_parser("album", help="Saved albums and new releases.")
    album = group.add_subparsers(title="album commands", dest="action", required=True)
    _list_command(album, "list", "album.list", "List saved albums.")
    _children_command(album, "tracks", "album.tracks", "album")
    _ids_commands(album, "album", "album")
    _list_command(album, "new-releases", "album.newReleases", "New album releases.")

    group = subs.add_parser("chapter", help="Audiobook chapters.")
    chapter = group.add_subparsers(title="chapter commands", dest="action", required=True)
    _get_command(chapter, "chapter", "chapter")

    group = subs.add_parser("category", help="Browse categories.")
    category = group.add_subparsers(title="category commands", dest="action", required=True)
    _list_command(category, "list", "category.list", "List categories.")
    _get_command(category, "category", "category")
    _children_command(category, "playlists", "category.playlists", "category")

    _command(subs, "markets", "markets.list", help="Markets where Spotify is available.")


def _add_follow(subs):
    group = subs.add_parser("follow", help="Follow artists and users.")
    follow = group.add_subparsers(title="follow commands", dest="action", required=True)
    for name, method, help in (
        ("artist", "follow.artist", "Follow artists."),
        ("user", "follow.user", "Follow users."),
        ("unfollow-artist", "follow.unfollowArtist", "Unfollow artists."),
        ("unfollow-user", "follow.unfollowUser", "Unfollow users."),
    ):
        sub = _command(follow, name, method, ("ids", "dry_run"), help=help)
        sub.add_argument("ids", nargs="+", help="IDs.")
        _add_dry_run(sub)
    for name, method, help in (
        ("check-artist", "follow.checkArtist", "Check whether you follow artists."),
        ("check-user", "follow.checkUser", "Check whether you follow users."),
    ):
        sub = _command(follow, name, method, ("ids",), help=help)
        sub.add_argument("ids", nargs="+", help="IDs.")
    listing = _command(follow, "list", "follow.list", ("limit",), help="Artists you follow.")
    listing.add_argument("--limit", type=int, default=20)


def _add_daemon(subs):
    group = subs.add_parser("daemon", help="Run commands through a background daemon.")
    commands = group.add_subparsers(title="daemon commands", dest="action", required=True)
    for name, func, help in (
        ("start", daemon.daemon_start, "Start the daemon in the background."),
        ("stop", daemon.daemon_stop, "Stop the daemon."),
        ("status", daemon.daemon_status, "Show whether the daemon is running."),
        ("run", daemon.daemon_run, "Run the daemon in the foreground."),
    ):
        commands.add_parser(name, help=help, parents=[OUTPUT_OPTIONS]).set_defaults(func=func)


def build_parser():
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Control Spotify from the command line.",
        epilog="Run 'auth login' first. The client ID is read from config.toml.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--loglevel",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level.",
    )
    parser.add_argument("--json", action="store_true", help="Print the raw JSON response.")
    parser.set_defaults(func=None, method=None, fields=())

    subs = parser.add_subparsers(title="commands", dest="command", required=True)
    _command(subs, "ping", "ping", help="Check that commands run.")
    _add_auth(subs)
    _add_player(subs)
    _add_queue(subs)
    _add_search(subs)
    _add_pin(subs)
    _add_playlist(subs)
    _add_library(subs)
    _add_info(subs)
    _add_user(subs)
    _add_resources(subs)
    _add_follow(subs)
    _add_daemon(subs)
    return parser


def params_from_args(args):
    """Params for ``args.method``, leaving out options that were not given."""
    return {
        name: getattr(args, name)
        for name in args.fields
        if getattr(args, name, None) is not None
    }


def run_command(args):
    if args.func is not None:
        return args.func()

    params = params_from_args(args)
    if args.method not in LOCAL_ONLY:
        try:
            return call_daemon(args.method, params)
        except DaemonUnavailable as e:
            logger.debug("Running in-process: %s", e)
    return Dispatcher().dispatch(args.method, params)


def show_scores():
    try:
        return Config.load().show_scores
    except (ConfigError, PathError):
        return True


def render(response, as_json):
    if as_json:
        print(response.to_json())
    else:
        FormatterRegistry(show_scores=show_scores()).render(response)


def _log_file():
    try:
        log_file_path = paths.log_file()
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
    except (PathError, OSError):
        return None
    return log_file_path


def main(argv=None):
    """Main function to parse arguments and dispatch commands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_file_path = _log_file()
    handlers = [logging.StreamHandler()]
    if log_file_path is not None:
        handlers.insert(0, logging.FileHandler(log_file_path, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, args.loglevel.upper()),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    logging.info("App started. Command: %s, LogLevel: %s", args.command, args.loglevel)
    if log_file_path is None:
        logging.warning("Config directory unavailable, logging to stderr only.")

    try:
        response = run_command(args)
        render(response, args.json)
    except Exception as e:
        logging.critical("Unhandled exception in '%s': %s", args.command, e, exc_info=True)
        where = f" Check '{log_file_path}' for details." if log_file_path else ""
        print(f"Unexpected error: {e}.{where}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0 if response.is_success else 1)


if __name__ == "__main__":
    main()
