"""
Glossary sync engine.

Components, leaf-first:
    checkpoint: CheckpointStore and its file / database storage backends
    extractors.glossary_reader: GlossaryReader, change-filtered record fetch
    transformers.record_mapper: RecordMapper, record to index item
    loaders.index_loader: IndexReconciler, upsert/delete/enumerate and schema provisioning
    runner: SyncRunner, one run end to end with checkpoint policy

Wiring and triggers:
    clients: httpx implementations of the catalog and index services
    bootstrap: builds a SyncRunner from settings
    scheduler: interval trigger (APScheduler)
    history / lock: optional run history and run lock

Usage:
    from connector.bootstrap import open_runner

    async with open_runner(settings) as runner:
        summary = await runner.run_incremental_sync()
"""

__all__ = [
    "CheckpointStore",
    "GlossaryReader",
    "RecordMapper",
    "IndexReconciler",
    "SyncRunner",
    "SyncScheduler",
]
