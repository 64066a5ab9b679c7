"""Ingest runner entry point.

Extracts and indexes local files into an owner's knowledge base from the
command line, printing the upload report as JSON.

Usage:
    python -m services.knowledge_base.ingest_runner --owner alice docs/*.pdf
"""

import argparse
import asyncio
import mimetypes
from pathlib import Path

from services.extraction.TextExtractor import TextExtractor
from services.indexing.IndexingService import IndexingService
from services.knowledge_base.KnowledgeBaseService import KnowledgeBaseService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.ocr.OCRClientManager import OCRClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.config import PipelineSettings
from shared.models.document import UploadedFile
from shared.store.memory.DocumentStoreMemory import DocumentStoreMemory


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract and index local files for one owner.")
    parser.add_argument("paths", nargs="+", help="Files to ingest")
    parser.add_argument("--owner", required=True, help="Owner ID the documents belong to")
    parser.add_argument("--embedding-key", default=None, help="Embedding API key (defaults to the configured one)")
    return parser.parse_args(argv)


def load_files(paths: list[str]) -> list[UploadedFile]:
    files: list[UploadedFile] = []
    for raw_path in paths:
        path = Path(raw_path)
        data = path.read_bytes()
        mime_type, _ = mimetypes.guess_type(path.name)
        files.append(UploadedFile(name=path.name, mime_type=mime_type or "", size_bytes=len(data), data=data))
    return files


async def main(argv: list[str] | None = None) -> None:
    """Run the ingestion pipeline for the given files."""
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    settings = PipelineSettings.from_config(config)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()
    ocr_client = OCRClientManager(helper_config=config).get_client()

    try:
        # the vector store is required, without it there is nowhere to index to
        try:
            await rag_client.boot()
            health = await rag_client.do_healthcheck()
            if not health.is_success:
                raise Exception(f"healthcheck returned status {health.status_code}")
            if not await rag_client.do_existence_check():
                await rag_client.do_create_collection(distance=embed_client.embed_distance)
        except Exception as e:
            logger.error("Error booting RAG client %s: %s. Aborting.", rag_client.get_engine_name(), e)
            return
        await embed_client.boot()

        service = KnowledgeBaseService(
            helper_config=config,
            document_store=DocumentStoreMemory(helper_config=config),
            extractor=TextExtractor(helper_config=config, ocr_client=ocr_client, settings=settings),
            indexer=IndexingService(helper_config=config, embed_client=embed_client, rag_client=rag_client, settings=settings),
            settings=settings,
        )
        report = await service.do_upload(
            owner_id=args.owner,
            files=load_files(args.paths),
            embedding_key=args.embedding_key,
            on_progress=lambda name, done, total: logger.info("%s: %d/%d chunks", name, done, total),
        )
        print(report.model_dump_json(indent=2, exclude={"documents": {"__all__": {"raw_content"}}}))
    finally:
        await embed_client.close()
        await rag_client.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
