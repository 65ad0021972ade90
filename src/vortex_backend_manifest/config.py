"""Runtime configuration.

Settings are read from environment variables. A ``.env`` file found from
the current working directory upwards is loaded first; variables that are
already set in the process environment win over the file.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .constants import DEFAULT_PROJECT_ID, DEFAULT_SLACK_CHANNEL, VERSION_WINDOW
from .errors import PreconditionError

DEFAULT_MAX_WORKERS = 8


def load_env(override: bool = False) -> str | None:
    """Load the nearest .env file into os.environ.

    Args:
        override: Whether values from the file replace existing variables

    Returns:
        Path of the loaded file, or None if no file was found
    """
    found = find_dotenv(".env", usecwd=True)
    if found:
        load_dotenv(found, override=override)
        return found
    return None


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def _env_int(environ: dict[str, str], name: str) -> int | None:
    raw = environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise PreconditionError(f"{name} must be an integer, got '{raw}'") from e


@dataclass(frozen=True)
class Settings:
    """Configuration shared by every flow.

    Attributes:
        nexus_api_key: Marketplace API key
        slack_bot_token: Chat bot token; notifications go to stderr without it
        slack_channel: Chat channel id for digests
        github_token: Source-control token used to read review requests
        github_project_id: Project board holding the review requests
        manifest_dir: Directory holding the canonical manifest files
        archive_dir: Directory receiving timestamped snapshots
        games_dir: Checkout of the bundled game extensions
        dry_run: Skip every write and notification
        update_check_since: Override of the manifest's last_updated (epoch ms)
        version_window: (oldest, newest) supported host versions
        max_workers: Size of the lookup thread pool
        motm_link: Default link for the mods of the month command
        motm_date: Default date (epoch ms, unparsed) for that command
    """

    nexus_api_key: str = ""
    slack_bot_token: str = ""
    slack_channel: str = DEFAULT_SLACK_CHANNEL
    github_token: str = ""
    github_project_id: str = DEFAULT_PROJECT_ID
    manifest_dir: Path = Path("out")
    archive_dir: Path = Path("archive")
    games_dir: Path = Path("cloned") / "vortex-games"
    dry_run: bool = False
    update_check_since: int | None = None
    version_window: tuple[str, str] = VERSION_WINDOW
    max_workers: int = DEFAULT_MAX_WORKERS
    motm_link: str = ""
    motm_date: str = ""

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, root: Path | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (no .env loading)
            root: Base for the default directories (defaults to the cwd)

        Returns:
            Settings instance

        Raises:
            PreconditionError: If a numeric variable cannot be parsed
        """
        if environ is None:
            load_env()
            environ = dict(os.environ)

        base = root if root is not None else Path.cwd()

        def path_setting(name: str, default: Path) -> Path:
            raw = environ.get(name, "").strip()
            return Path(raw) if raw else base / default

        return cls(
            nexus_api_key=environ.get("NEXUS_APIKEY") or environ.get("NEXUS_API_KEY") or "",
            slack_bot_token=environ.get("SLACK_BOT_TOKEN", ""),
            slack_channel=environ.get("SLACK_CHANNEL") or DEFAULT_SLACK_CHANNEL,
            github_token=environ.get("PERSONAL_ACCESS_TOKEN", ""),
            github_project_id=environ.get("GITHUB_PROJECT_ID") or DEFAULT_PROJECT_ID,
            manifest_dir=path_setting("MANIFEST_DIR", Path("out")),
            archive_dir=path_setting("ARCHIVE_DIR", Path("archive")),
            games_dir=path_setting("GAMES_DIR", Path("cloned") / "vortex-games"),
            dry_run=_env_flag(environ.get("DRYRUN")),
            update_check_since=_env_int(environ, "UPDATE_CHECK_SINCE"),
            version_window=(
                environ.get("VERSION_WINDOW_LOW") or VERSION_WINDOW[0],
                environ.get("VERSION_WINDOW_HIGH") or VERSION_WINDOW[1],
            ),
            max_workers=_env_int(environ, "MAX_WORKERS") or DEFAULT_MAX_WORKERS,
            motm_link=environ.get("EXT_MOTM_LINK", ""),
            motm_date=environ.get("EXT_MOTM_DATE", ""),
        )

    def require_nexus_key(self) -> str:
        """Return the marketplace API key.

        Raises:
            PreconditionError: If no key is configured
        """
        if not self.nexus_api_key:
            raise PreconditionError("No Nexus API key found in env (NEXUS_APIKEY)")
        return self.nexus_api_key

    def require_github_token(self) -> str:
        """Return the source-control token.

        Raises:
            PreconditionError: If no token is configured
        """
        if not self.github_token:
            raise PreconditionError("No GitHub token found in env (PERSONAL_ACCESS_TOKEN)")
        return self.github_token
