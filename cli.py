import asyncio
import logging
import threading
from typing import Callable, List, Optional, Tuple
import typer
from config.ledger import build_ledger, inclusion_policy
from config.settings import settings
from core.errors import ConfigurationError, NotFound, StoreError
from core.memory_ledger import MemoryLedger
from model.record import Record
from service.store_service import StoreService
from util.enums import Color
from util.logger import init_logger

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Interactive shell for a blob-ledger key-value store.")

HELP_TEXT = """Available commands:
  add <key> <value>  - Add a record (a newer add for the same key wins)
  get <key>          - Show the current value of a key
  list               - List all current records
  info               - Show namespace, anchor and tip
  help               - Show this message
  exit | quit        - Leave the shell"""

EXIT_WORDS = ("exit", "quit")


def parse_command(line: str) -> Tuple[str, List[str]]:
    """
    Split a shell line into (command, args). The value of `add` keeps its
    inner whitespace so JSON values survive intact.
    """
    parts = line.strip().split(maxsplit=2)
    if not parts:
        return "", []
    cmd, args = parts[0].lower(), parts[1:]
    if cmd == "add" and len(args) != 2:
        raise ValueError("Usage: add <key> <value>")
    if cmd == "get" and len(args) != 1:
        raise ValueError("Usage: get <key>")
    if cmd in ("list", "info", "help", *EXIT_WORDS) and args:
        raise ValueError(f"Usage: {cmd}")
    if cmd not in ("add", "get", "list", "info", "help", *EXIT_WORDS):
        raise ValueError("Unknown command. Type 'help' for the list of commands.")
    return cmd, args


def _fmt(record: Record) -> str:
    return f"  {record.key} = {record.value} (id={record.id}, created={record.created_at.isoformat()})"


async def handle_command(store: StoreService, cmd: str, args: List[str]) -> None:
    if cmd == "add":
        result = await store.add(args[0], args[1])
        typer.echo(
            f"Added {result.record.key!r} at height {result.height} ({result.status.value})"
        )
    elif cmd == "get":
        typer.echo(_fmt(await store.get(args[0])))
    elif cmd == "list":
        records = await store.list()
        typer.echo(f"Found {len(records)} records:")
        for r in records:
            typer.echo(_fmt(r))
    elif cmd == "info":
        info = await store.describe()
        typer.echo(
            f"namespace={info.label} ({info.namespace}) start={info.startHeight} "
            f"tip={info.tip} records={info.recordCount} bootstrap={info.outcome.value}"
        )
    elif cmd == "help":
        typer.echo(HELP_TEXT)


async def _read_line(prompt: str = "> ", reader: Callable[[str], str] = input) -> Optional[str]:
    """
    Read one line off the event loop; None on EOF.

    The reader runs on a daemon thread, not the loop's default executor, so a
    prompt nobody answers never holds up loop shutdown after Ctrl-C.
    """
    loop = asyncio.get_running_loop()
    fut: "asyncio.Future[Optional[str]]" = loop.create_future()

    def _resolve(line: Optional[str], exc: Optional[BaseException]) -> None:
        if fut.done():
            return
        if exc is not None:
            fut.set_exception(exc)
        else:
            fut.set_result(line)

    def _read() -> None:
        line: Optional[str] = None
        exc: Optional[BaseException] = None
        try:
            line = reader(prompt)
        except EOFError:
            pass
        except Exception as e:
            exc = e
        try:
            loop.call_soon_threadsafe(_resolve, line, exc)
        except RuntimeError:
            # loop already closed
            pass

    threading.Thread(target=_read, name="blobkv-stdin", daemon=True).start()
    return await fut


async def run_shell(store: StoreService) -> None:
    typer.echo(HELP_TEXT)
    while True:
        line = await _read_line()
        if line is None:
            break
        try:
            cmd, args = parse_command(line)
        except ValueError as e:
            typer.echo(f"Error: {e}")
            continue
        if not cmd:
            continue
        if cmd in EXIT_WORDS:
            break
        try:
            await handle_command(store, cmd, args)
        except NotFound as e:
            typer.echo(f"No record found with key {e.key!r}")
        except StoreError as e:
            logger.error("shell.command.error cmd=%s err=%s", cmd, e)
            typer.echo(f"Error: {e}")


async def _session(
    namespace: str,
    width: int,
    start_height: Optional[int],
    search_limit: Optional[int],
    memory: bool,
) -> None:
    ledger = MemoryLedger() if memory else build_ledger()
    store: Optional[StoreService] = None
    try:
        store = await StoreService.open(
            ledger,
            label=namespace,
            width=width,
            start_height=start_height,
            search_limit=search_limit,
            concurrency=settings.SCAN_CONCURRENCY,
            inclusion=inclusion_policy(),
        )
        info = await store.describe()
        typer.echo(
            f"{Color.GREEN}Store {info.outcome.value}: namespace={namespace} "
            f"start={info.startHeight} tip={info.tip}{Color.RESET}"
        )
        await run_shell(store)
    finally:
        if store is not None:
            await store.aclose()
        await ledger.aclose()


@app.command()
def shell(
    namespace: str = typer.Argument(..., help="Plaintext namespace label"),
    start_height: Optional[int] = typer.Option(
        None, "--start-height", help="Pin the store anchor [default: START_HEIGHT]"
    ),
    search_limit: Optional[int] = typer.Option(
        None,
        "--search-limit",
        help="Blocks to scan back from tip for an anchor [default: SEARCH_LIMIT]",
    ),
    width: int = typer.Option(settings.NAMESPACE_WIDTH, "--width", help="Namespace id width (8 or 10)"),
    memory: bool = typer.Option(False, "--memory", help="Use an in-process ledger"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    init_logger(log_level)
    if start_height is None:
        start_height = settings.START_HEIGHT
    if search_limit is None:
        search_limit = settings.SEARCH_LIMIT
    try:
        asyncio.run(_session(namespace, width, start_height, search_limit, memory))
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)
    except StoreError as e:
        typer.echo(f"Could not open store: {e}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        typer.echo("Interrupted", err=True)
        raise typer.Exit(code=130)
    typer.echo("Bye")


if __name__ == "__main__":
    app()
