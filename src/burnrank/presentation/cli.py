import asyncio, logging
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..adapters.dataset_pandas import PandasDatasetSink
from ..adapters.progress_rich import RichProgress
from ..adapters.rpc_httpx import HttpxRPC
from ..application.pacing import RetryPolicy
from ..application.use_cases import check_connection, snapshot_chain, snapshot_chains
from ..config import SUPPORTED_CHAINS, load_chains, resolve_chain, resolve_chains, with_chunk_size
from ..domain.errors import BurnRankError
from ..domain.models import BurnRecord, ChainDescriptor, CombinedResult

app = typer.Typer(help="Rank every address that burned a token, across one or more chains.")
console = Console()

_state = {"retries": 3, "progress": True}

def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)

def _retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=max(1, _state["retries"]))

def _progress(chain: ChainDescriptor):
    return RichProgress(chain.name, console=console) if _state["progress"] else None

def _rpc(chain: ChainDescriptor) -> HttpxRPC:
    return HttpxRPC(chain.rpc_url)

def _run(main) -> None:
    try:
        asyncio.run(main())
    except BurnRankError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(code=1)

def _top(records: tuple[BurnRecord, ...] | list[BurnRecord], n: int, title: str, symbol: str, with_chain: bool = False) -> Table:
    t = Table(title=title, title_justify="left")
    t.add_column("#", justify="right")
    if with_chain:
        t.add_column("Chain")
    t.add_column("Address")
    t.add_column(f"Burned {symbol}", justify="right")
    for r in records[:n]:
        cells = [str(r.rank)] + ([r.chain] if with_chain else []) + [r.address, f"{r.amount:,.2f}"]
        t.add_row(*cells)
    return t

def _summary(combined: CombinedResult, symbol: str) -> Table:
    t = Table(title="Multi-chain summary", title_justify="left")
    t.add_column("Chain"); t.add_column("Addresses", justify="right")
    t.add_column(f"{symbol} burned", justify="right"); t.add_column("File")
    for res in combined.chains:
        t.add_row(res.chain, f"{res.address_count:,}", f"{res.total_burned:,.2f}", res.output or "[red]not written[/]")
    t.add_section()
    t.add_row("[bold]GRAND TOTAL[/]", f"[bold]{combined.total_addresses:,}[/]",
              f"[bold]{combined.total_burned:,.2f}[/]", combined.output or "")
    return t

@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    retries: int = typer.Option(3, help="Attempts per RPC query (1 disables retry)"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Live progress bars"),
):
    load_dotenv()
    _setup_logging(verbose)
    _state["retries"] = retries
    _state["progress"] = progress

@app.command()
def snapshot(
    chain: str = typer.Option("ethereum", "--chain", "-c", help=f"Chain to analyze ({', '.join(SUPPORTED_CHAINS)})"),
    output: str = typer.Option("", "--output", "-o", help="Output file (.csv or .parquet)"),
    chunk_size: int = typer.Option(0, help="Override blocks per eth_getLogs"),
):
    """Generate a burn snapshot for a single chain."""
    async def run():
        desc = with_chunk_size(resolve_chain(chain, load_chains()), chunk_size)
        console.print(Panel(f"[bold]{desc.name} {desc.token_symbol} burn snapshot[/]\n"
                            f"contract {desc.contract} • start block {desc.start_block:,}"))
        async with _rpc(desc) as rpc:
            res = await snapshot_chain(
                rpc=rpc, chain=desc, sink=PandasDatasetSink(), output=output or None,
                retry=_retry(), progress=_progress(desc),
            )
        if res is None:
            console.print(f"[yellow]No burns found on {desc.name}[/]")
            return
        console.print(f"[green]✓[/] {res.address_count:,} addresses, "
                      f"{res.total_burned:,.2f} {desc.token_symbol} burned → {res.output}")
        console.print(_top(res.records, 5, f"Top 5 {desc.name} {desc.token_symbol} burners", desc.token_symbol))

    _run(run)

@app.command()
def multichain(
    chains: str = typer.Option(",".join(SUPPORTED_CHAINS), "--chains", "-c", help="Comma-separated list of chains"),
    output_prefix: str = typer.Option("", "--output-prefix", "-o", help="Output filename prefix"),
):
    """Generate burn snapshots for several chains, one after another, plus a combined ranking."""
    async def run():
        descs = resolve_chains([c for c in chains.split(",") if c.strip()], load_chains())
        console.print(Panel(f"[bold]Multi-chain burn analysis[/]\nchains: {', '.join(d.name for d in descs)}"))
        combined = await snapshot_chains(
            chains=descs, rpc_factory=_rpc, sink=PandasDatasetSink(),
            output_prefix=output_prefix or None, retry=_retry(), progress_factory=_progress,
        )
        if combined is None:
            console.print("[yellow]No results from any chain[/]")
            return
        symbol = descs[0].token_symbol
        console.print(_summary(combined, symbol))
        console.print(_top(combined.records, 10, f"Top 10 cross-chain {symbol} burners", symbol, with_chain=True))

    _run(run)

@app.command("test")
def test_connection(
    chain: str = typer.Option("ethereum", "--chain", "-c", help=f"Chain to test ({', '.join(SUPPORTED_CHAINS)})"),
):
    """Test the connection to a chain's RPC endpoint and token contract."""
    async def run():
        desc = resolve_chain(chain, load_chains())
        async with _rpc(desc) as rpc:
            status = await check_connection(rpc, desc)
        token = f"{status.token_name} ({status.token_symbol})" if status.token_name else "[yellow]unverified[/]"
        console.print(f"[green]✓[/] {desc.name} connection successful • chain id {status.network_id} • "
                      f"block {status.latest_block:,} • token {token}")

    _run(run)

if __name__ == "__main__":
    app()
