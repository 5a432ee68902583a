"""CLI interface for drivesync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import DriveClient
from .auth import load_credentials
from .config import build_run_config, config
from .exceptions import DriveAPIError, DriveConfigError
from .output import OutputFormatter
from .sync import SyncDriver, SyncEngine, resolve_remote_root
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_SYNC_INTERVAL

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    verbose: bool, quiet: bool = False, log_file: Optional[Path] = None
) -> None:
    """Configure the ``drivesync`` logger.

    Records go to stderr (unless quiet) and, when ``log_file`` is given, are
    appended to that file as well. Handlers installed by a previous call are
    replaced.

    Args:
        verbose: Log at DEBUG instead of INFO
        quiet: Only log warnings and errors to the console
        log_file: Optional file receiving every record
    """
    package_logger = logging.getLogger("drivesync")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_drivesync_handler", False):
            package_logger.removeHandler(handler)
            handler.close()

    level = logging.DEBUG if verbose else logging.INFO
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setLevel(logging.WARNING if quiet else level)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for handler in handlers:
        handler._drivesync_handler = True  # type: ignore[attr-defined]
        package_logger.addHandler(handler)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option(
    "--config-dir",
    envvar="DRIVESYNC_CONFIG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for credentials, token and log file (default: ~/.drivesync)",
)
@click.version_option(package_name="drivesync")
@click.pass_context
def main(ctx: Any, quiet: bool, verbose: bool, config_dir: Optional[Path]) -> None:
    """drivesync - Keep a local folder mirrored with Google Drive."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(quiet=quiet)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    config.set_config_dir(config_dir)
    configure_logging(verbose, quiet)


@main.command()
@click.option(
    "--credentials",
    "-c",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="OAuth client secrets file downloaded from the Google Cloud console",
)
@click.pass_context
def init(ctx: Any, credentials: Path) -> None:
    """Install client credentials and authorize access to Google Drive.

    Copies the credentials file into the config directory and opens the
    browser to grant access. The resulting token is stored next to it.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        credentials_path = config.install_credentials(credentials)
        out.info("Authorizing with Google Drive...")
        creds = load_credentials(credentials_path, config.token_path)

        with DriveClient(credentials=creds) as client:
            about = client.get_about()
    except (DriveConfigError, DriveAPIError) as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)
        return

    user = about.get("user", {})
    out.print_summary(
        "Initialization Complete",
        [
            ("Account", user.get("emailAddress", "unknown")),
            ("Credentials", str(credentials_path)),
            ("Token", str(config.token_path)),
        ],
    )


@main.command()
@click.argument("folder", type=click.Path(path_type=Path))
@click.option(
    "--credentials",
    "-c",
    type=click.Path(dir_okay=False, path_type=Path),
    help="OAuth client secrets file, copied to the config directory",
)
@click.option(
    "--once",
    is_flag=True,
    help="Run a single sync pass instead of syncing continuously",
)
@click.option(
    "--interval",
    "-i",
    type=float,
    default=DEFAULT_SYNC_INTERVAL,
    show_default=True,
    help="Seconds to wait between passes in continuous mode",
)
@click.option(
    "--remote-name",
    "-r",
    help="Name of the Drive folder to sync with (default: folder basename)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be done without changing anything (implies --once)",
)
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=DEFAULT_MAX_RETRIES,
    show_default=True,
    help="Retries for transient Drive errors before a pass fails",
)
@click.pass_context
def sync(
    ctx: Any,
    folder: Path,
    credentials: Optional[Path],
    once: bool,
    interval: float,
    remote_name: Optional[str],
    dry_run: bool,
    max_retries: int,
) -> None:
    """Sync FOLDER with a Google Drive folder of the same name.

    New files are uploaded or downloaded, changed files are transferred in
    whichever direction holds the newer copy, and missing folders are
    created on both sides. Nothing is ever deleted.

    Examples:
        drivesync sync ~/Documents --once
        drivesync sync ~/Photos -r "Camera Roll" --interval 300
        drivesync sync ./notes --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]
    configure_logging(ctx.obj["verbose"], ctx.obj["quiet"], config.log_path)

    try:
        run_config = build_run_config(
            folder,
            credentials=credentials,
            once=once,
            interval=interval,
            remote_name=remote_name,
        )
        if credentials is not None:
            run_config.credentials_path = config.install_credentials(credentials)
        creds = load_credentials(run_config.credentials_path, config.token_path)
    except (DriveConfigError, DriveAPIError) as e:
        out.error(str(e))
        ctx.exit(1)
        return

    logger.info(
        f"Syncing {run_config.local_root} with Drive folder "
        f"'{run_config.remote_folder_name}'"
    )

    with DriveClient(credentials=creds, max_retries=max_retries) as client:
        try:
            root_id = resolve_remote_root(
                client, run_config.remote_folder_name, create=not dry_run
            )
        except DriveAPIError as e:
            out.error(f"Could not resolve remote folder: {e}")
            ctx.exit(1)
            return

        if root_id is None:
            out.warning(
                f"Drive folder '{run_config.remote_folder_name}' does not exist yet; "
                "it would be created and every local file uploaded."
            )
            return

        driver = SyncDriver(SyncEngine(client))
        result = driver.run(
            run_config.local_root,
            root_id,
            once=run_config.once,
            interval=run_config.interval,
            dry_run=dry_run,
        )

    out.display_sync_summary(result.stats, dry_run=dry_run, completed=result.ok)
    if not result.ok:
        out.error(f"Sync failed: {result.error}")
        ctx.exit(1)


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Show the authorized account and its storage usage."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        creds = load_credentials(
            config.credentials_path, config.token_path, interactive=False
        )
        with DriveClient(credentials=creds) as client:
            about = client.get_about()
    except (DriveConfigError, DriveAPIError) as e:
        out.error(str(e))
        out.info("Run 'drivesync init --credentials PATH' to authorize")
        ctx.exit(1)
        return

    user = about.get("user", {})
    quota = about.get("storageQuota", {})
    rows = [
        ("User", user.get("displayName", "unknown")),
        ("Email", user.get("emailAddress", "unknown")),
    ]
    if quota.get("usage") is not None:
        usage = out.format_size(int(quota["usage"]))
        limit = quota.get("limit")
        usage_text = (
            f"{usage} of {out.format_size(int(limit))}" if limit else f"{usage} (unlimited)"
        )
        rows.append(("Storage", usage_text))
    rows.append(("Config directory", str(config.config_dir)))
    out.print_summary("Google Drive Status", rows)


if __name__ == "__main__":
    main()
