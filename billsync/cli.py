import json
import random
import sys

import click

from .config import (
    DEFAULT_CONFIG_PATH, DEFAULT_ENVIRONMENT, VALID_ENVIRONMENTS,
    get_logger, get_openai_client, index_name_for_environment,
)
from .sync.config import SyncConfig
from .sync.destination_probe import DestinationCountProbe
from .sync.embedding_processor import OpenAIEmbedder
from .sync.error_tracker import SyncException
from .sync.orchestrator import SyncOrchestrator
from .sync.page_fetcher import PageFetcher
from .sync.record_sink import RecordSink
from .sync.source_probe import SourceCountProbe
from .sync.state_manager import StateManager
from .vector_store import BillVectorStoreES

logger = get_logger(__name__)


def load_config(config_path: str) -> SyncConfig:
    try:
        return SyncConfig.from_yaml(config_path)
    except SyncException as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


def connect_vector_store(environment: str) -> BillVectorStoreES:
    try:
        return BillVectorStoreES.from_environment(environment)
    except (ValueError, ConnectionError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
def cli():
    """Harvest signed bills and keep the bill vector index in sync."""
    pass


config_option = click.option('--config', 'config_path', type=click.Path(dir_okay=False),
                             default=str(DEFAULT_CONFIG_PATH), show_default=True,
                             help='Path to the sync configuration YAML file')


@cli.command(name='sync')
@click.argument('environment', type=click.Choice(VALID_ENVIRONMENTS), default=DEFAULT_ENVIRONMENT)
@config_option
@click.option('--force', is_flag=True, default=False, help='Always crawl and upload')
@click.option('--skip-upload', is_flag=True, default=False, help='Never upload to the index')
@click.option('--max-requests', type=click.INT, default=None, help='Global page budget for the crawl')
@click.option('--start-url', 'start_urls', multiple=True, help='Listing page to start from (repeatable)')
@click.option('--settle-seconds', type=click.FLOAT, default=None, help='Wait after creating the index')
def sync(environment, config_path, force, skip_upload, max_requests, start_urls, settle_seconds):
    """Crawl new signed bills and upload them to the vector index."""
    config = load_config(config_path).with_overrides(
        force_run=force or None,
        skip_upload=skip_upload or None,
        max_requests_per_crawl=max_requests,
        start_urls=list(start_urls) or None,
    )
    if settle_seconds is not None:
        config = config.model_copy(update={'index': config.index.model_copy(update={'settle_seconds': settle_seconds})})

    click.echo(f"Syncing '{config.name}' to {environment}")
    vector_store = connect_vector_store(environment)
    fetcher = PageFetcher(config.fetch)
    try:
        embedder = OpenAIEmbedder(get_openai_client(environment))
        orchestrator = SyncOrchestrator(config, fetcher, vector_store, embedder, environment=environment)
        summary = orchestrator.run()
        orchestrator.print_summary(summary)
    except (SyncException, ValueError) as e:
        logger.error(f"Sync failed: {e}", exc_info=True)
        click.echo(f"Sync failed: {e}", err=True)
        sys.exit(1)
    finally:
        fetcher.close()
        vector_store.close()


@cli.command(name='check')
@click.argument('environment', type=click.Choice(VALID_ENVIRONMENTS), default=DEFAULT_ENVIRONMENT)
@config_option
def check(environment, config_path):
    """Compare the website's signed bill count with the index, without crawling."""
    config = load_config(config_path)
    index_name = index_name_for_environment(config.index.name, environment)
    fetcher = PageFetcher(config.fetch)
    vector_store = connect_vector_store(environment)
    try:
        source = SourceCountProbe(fetcher, config.source).probe()
        destination = DestinationCountProbe(vector_store, index_name).probe()
    finally:
        fetcher.close()
        vector_store.close()

    previous = StateManager(config.storage.state_path).previous_count()
    click.echo(f"Website signed bills: {source.count if source.available else 'unavailable'}")
    click.echo(f"Previous count:       {previous}")
    click.echo(f"Index '{index_name}':  {destination.count if destination.available else 'unavailable'}")
    if source.available and destination.available:
        if source.count > destination.count:
            click.echo(f"{source.count - destination.count} bills are missing from the index")
        else:
            click.echo("Index is up to date")


@cli.group(name='index')
def index_group():
    """Inspect and maintain the bill vector index."""
    pass


@index_group.command(name='inspect')
@click.argument('environment', type=click.Choice(VALID_ENVIRONMENTS), default=DEFAULT_ENVIRONMENT)
@config_option
@click.option('--sample', type=click.INT, default=0, help='Query N records with a random vector')
@click.option('--save', is_flag=True, default=False, help='Save the index snapshot to the configured path')
def inspect_index(environment, config_path, sample, save):
    """Show indexes, record counts and namespaces."""
    config = load_config(config_path)
    index_name = index_name_for_environment(config.index.name, environment)
    vector_store = connect_vector_store(environment)
    try:
        click.echo("Indexes:")
        for index in vector_store.list_indexes():
            click.echo(f"  - {index['name']}")

        probe = DestinationCountProbe(vector_store, index_name)
        if save:
            snapshot = probe.save_snapshot(config.storage.index_snapshot_path)
        else:
            snapshot = probe.snapshot()
        click.echo(json.dumps(snapshot, indent=2, ensure_ascii=False))

        if sample and snapshot['exists']:
            dimension = snapshot['dimension'] or config.index.dimension
            vector = [random.random() for _ in range(dimension)]
            for match in vector_store.query(index_name, vector, top_k=sample, include_metadata=True):
                title = match.get('metadata', {}).get('title', '')
                click.echo(f"  {match['id']} ({match['score']}): {title}")
    finally:
        vector_store.close()


@index_group.command(name='delete')
@click.argument('environment', type=click.Choice(VALID_ENVIRONMENTS))
@click.argument('ids', nargs=-1, required=True)
@config_option
def delete_vectors(environment, ids, config_path):
    """Delete vectors by id."""
    config = load_config(config_path)
    index_name = index_name_for_environment(config.index.name, environment)
    vector_store = connect_vector_store(environment)
    try:
        probe = DestinationCountProbe(vector_store, index_name)
        before = probe.probe()
        deleted = vector_store.delete(index_name, list(ids))
        after = probe.probe()
    finally:
        vector_store.close()
    click.echo(f"Deleted {deleted} vectors from '{index_name}' ({before.count} -> {after.count} records)")


@cli.group(name='sink')
def sink_group():
    """Manage the local record sink."""
    pass


@sink_group.command(name='backup')
@config_option
def backup_sink(config_path):
    """Copy new or changed record files to the backup directory."""
    config = load_config(config_path)
    copied = RecordSink(config.storage.sink_directory).backup(config.storage.backup_directory)
    click.echo(f"Backed up {copied} files to {config.storage.backup_directory}")


@sink_group.command(name='restore')
@config_option
def restore_sink(config_path):
    """Copy backed-up record files into the sink."""
    config = load_config(config_path)
    restored = RecordSink(config.storage.sink_directory).restore(config.storage.backup_directory)
    click.echo(f"Restored {restored} files from {config.storage.backup_directory}")


@sink_group.command(name='stats')
@config_option
def sink_stats(config_path):
    """Show the number of stored bills and the recorded website count."""
    config = load_config(config_path)
    sink = RecordSink(config.storage.sink_directory)
    state = StateManager(config.storage.state_path).read()
    click.echo(f"Stored bills: {sink.count()}")
    if state:
        click.echo(f"Last website count: {state.last_known_source_count} (at {state.last_updated})")
    else:
        click.echo("No sync state recorded yet")


def main():
    cli()

if __name__ == '__main__':
    main()
