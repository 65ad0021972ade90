"""Shared constants for the manifest automation."""

from .core.types import ExtensionType

# Static urls
LIVE_MANIFEST_URL = "https://raw.githubusercontent.com/Nexus-Mods/Vortex-Backend/main/out/extensions-manifest.json"
NEXUS_API_URL = "https://api.nexusmods.com/v1"
NEXUS_MOD_URL = "https://www.nexusmods.com/site/mods/{mod_id}"
GAME_TILE_URL = "https://staticdelivery.nexusmods.com/images/games/4_3/tile_{game_id}.jpg"
SLACK_API_URL = "https://slack.com/api/chat.postMessage"
GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"

# Every extension lives under the "site" pseudo-game on the marketplace
SITE_DOMAIN = "site"

# Emojis for chat messages
GAME_EMOJI = ":joystick:"
THEME_EMOJI = ":art:"
TRANSLATION_EMOJI = ":earth_africa:"
UNKNOWN_EMOJI = ":question:"
TOOL_EMOJI = ":hammer_and_wrench:"
WARNING_EMOJI = ":warning:"
ERROR_EMOJI = ":x:"

# Time constants (milliseconds)
ONE_DAY = 1000 * 60 * 60 * 24

# Files
MANIFEST_FILENAME = "extensions-manifest.json"
SPOTLIGHTS_FILENAME = "modspotlights.json"
MOTM_FILENAME = "modsofthemonth.json"

# Label of the snapshot written before entries are removed by hand
SANITIZE_ARCHIVE_LABEL = "before-sanitize"

# Marketplace category id -> extension type
CATEGORIES: dict[int, ExtensionType] = {
    4: ExtensionType.GAME,
    7: ExtensionType.TRANSLATION,
    13: ExtensionType.THEME,
}

# File category id of "main" files on the marketplace
MAIN_FILE_CATEGORY = 1

# Supported host application versions
VERSION_WINDOW = ("1.8.0", "1.8.999")

# Bundled game extensions
GAMES_REPO_NAME = "vortex-games"
GAMES_BRANCH_NAME = "release"
GAMES_REPO_SLUG = f"Nexus-Mods/{GAMES_REPO_NAME}"
GAME_ART_URL = "https://raw.githubusercontent.com/Nexus-Mods/vortex-games/{branch}/{folder}/gameart.jpg"
GAME_FOLDER_PREFIX = "game-"
GAME_NAME_PREFIX = "Game: "
GAME_EXCLUSIONLIST = [
    "game-subnautica",
    "game-subnauticabelowzero",
]

# Review workflow
DEFAULT_SLACK_CHANNEL = "C0GM4G264"
DEFAULT_PROJECT_ID = "PVT_kwDOAQS0W84AL03l"
EXTENSION_LABEL = "extension"
QUEUED_STATUS = "queued"
