"""Path builders for the Web API endpoints spotify-cli calls (relative to API_BASE_URL)."""

from urllib.parse import quote, urlencode


def _ids(ids):
    return ",".join(ids)


def _page(limit, offset):
    return urlencode({"limit": limit, "offset": offset})


# --- Player ---
def player_state():
    return "/me/player"


def player_play():
    return "/me/player/play"


def player_pause():
    return "/me/player/pause"


def player_next():
    return "/me/player/next"


def player_previous():
    return "/me/player/previous"


def player_queue():
    return "/me/player/queue"


def player_queue_add(uri):
    return f"/me/player/queue?uri={quote(uri, safe='')}"


def player_devices():
    return "/me/player/devices"


def player_transfer():
    return "/me/player"


def player_recently_played(limit=20):
    return f"/me/player/recently-played?limit={limit}"


def player_seek(position_ms):
    return f"/me/player/seek?position_ms={position_ms}"


def player_volume(volume_percent):
    return f"/me/player/volume?volume_percent={volume_percent}"


def player_shuffle(state):
    return f"/me/player/shuffle?state={'true' if state else 'false'}"


def player_repeat(state):
    return f"/me/player/repeat?state={state}"


# --- Playlists ---
def playlist(playlist_id):
    return f"/playlists/{playlist_id}"


def playlist_tracks(playlist_id):
    return f"/playlists/{playlist_id}/tracks"


def playlist_items(playlist_id, limit, offset):
    return f"/playlists/{playlist_id}/tracks?{_page(limit, offset)}"


def playlist_followers(playlist_id):
    return f"/playlists/{playlist_id}/followers"


def playlist_cover_image(playlist_id):
    return f"/playlists/{playlist_id}/images"


def current_user_playlists(limit, offset):
    return f"/me/playlists?{_page(limit, offset)}"


def user_playlists(user_id):
    return f"/users/{user_id}/playlists"


def featured_playlists(limit, offset):
    return f"/browse/featured-playlists?{_page(limit, offset)}"


def category_playlists(category_id, limit, offset):
    return f"/browse/categories/{category_id}/playlists?{_page(limit, offset)}"


# --- Library ---
def saved_tracks(limit, offset):
    return f"/me/tracks?{_page(limit, offset)}"


def saved_tracks_ids(ids):
    return f"/me/tracks?ids={_ids(ids)}"


def saved_tracks_contains(ids):
    return f"/me/tracks/contains?ids={_ids(ids)}"


def saved_albums(limit, offset):
    return f"/me/albums?{_page(limit, offset)}"


def saved_albums_ids(ids):
    return f"/me/albums?ids={_ids(ids)}"


def saved_albums_contains(ids):
    return f"/me/albums/contains?ids={_ids(ids)}"


def saved_shows(limit, offset):
    return f"/me/shows?{_page(limit, offset)}"


def saved_shows_ids(ids):
    return f"/me/shows?ids={_ids(ids)}"


def saved_shows_contains(ids):
    return f"/me/shows/contains?ids={_ids(ids)}"


def saved_episodes(limit, offset):
    return f"/me/episodes?{_page(limit, offset)}"


def saved_episodes_ids(ids):
    return f"/me/episodes?ids={_ids(ids)}"


def saved_episodes_contains(ids):
    return f"/me/episodes/contains?ids={_ids(ids)}"


def saved_audiobooks(limit, offset):
    return f"/me/audiobooks?{_page(limit, offset)}"


def saved_audiobooks_ids(ids):
    return f"/me/audiobooks?ids={_ids(ids)}"


def saved_audiobooks_contains(ids):
    return f"/me/audiobooks/contains?ids={_ids(ids)}"


# --- Catalog ---
def track(track_id):
    return f"/tracks/{track_id}"


def album(album_id):
    return f"/albums/{album_id}"


def album_tracks(album_id, limit, offset):
    return f"/albums/{album_id}/tracks?{_page(limit, offset)}"


def new_releases(limit, offset):
    return f"/browse/new-releases?{_page(limit, offset)}"


def artist(artist_id):
    return f"/artists/{artist_id}"


def artist_top_tracks(artist_id, market):
    return f"/artists/{artist_id}/top-tracks?market={market}"


def artist_albums(artist_id, limit, offset):
    return f"/artists/{artist_id}/albums?{_page(limit, offset)}"


def artist_related_artists(artist_id):
    return f"/artists/{artist_id}/related-artists"


def show(show_id):
    return f"/shows/{show_id}"


def show_episodes(show_id, limit, offset):
    return f"/shows/{show_id}/episodes?{_page(limit, offset)}"


def episode(episode_id):
    return f"/episodes/{episode_id}"


def audiobook(audiobook_id):
    return f"/audiobooks/{audiobook_id}"


def audiobook_chapters(audiobook_id, limit, offset):
    return f"/audiobooks/{audiobook_id}/chapters?{_page(limit, offset)}"


def chapter(chapter_id):
    return f"/chapters/{chapter_id}"


def category(category_id):
    return f"/browse/categories/{category_id}"


def categories(limit, offset):
    return f"/browse/categories?{_page(limit, offset)}"


def markets():
    return "/markets"


def search(query, types, limit):
    return "/search?" + urlencode({"q": query, "type": ",".join(types), "limit": limit})


# --- Users and follows ---
def current_user():
    return "/me"


def user_profile(user_id):
    return f"/users/{user_id}"


def user_top_items(item_type, time_range, limit, offset=0):
    return f"/me/top/{item_type}?" + urlencode(
        {"time_range": time_range, "limit": limit, "offset": offset}
    )


def followed_artists(limit):
    return f"/me/following?type=artist&limit={limit}"


def follow_artists_or_users(entity_type, ids):
    return f"/me/following?type={entity_type}&ids={_ids(ids)}"


def following_contains(entity_type, ids):
    return f"/me/following/contains?type={entity_type}&ids={_ids(ids)}"
