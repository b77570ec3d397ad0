"""Server command."""

import logging

from rich.console import Console

from aitriage.config.schema import TriageConfig

console = Console()


def serve_command(config: TriageConfig, host: str | None = None, port: int | None = None) -> None:
    """Run the API server in the foreground.

    Args:
        config: aitriage configuration
        host: Bind address override
        port: Port override
    """
    import uvicorn

    from aitriage.server.app import create_app

    host = host or config.server.host
    port = port or config.server.port
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    app = create_app(config)
    console.print(f"[green]Starting aitriage server on {host}:{port}[/green]")
    console.print(f"Storage: {config.storage.backend}")
    console.print(f"Paraphraser: {'on' if config.paraphraser.enabled else 'off'}")
    console.print("\nPress Ctrl+C to stop")

    uvicorn.run(app, host=host, port=port, log_level="info")
