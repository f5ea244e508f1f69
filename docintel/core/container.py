"""Explicit wiring of the capabilities every use-case needs.

The container is built once at process start and passed to each service
function; nothing downstream looks clients or settings up globally.
"""

from dataclasses import dataclass, field

from openai import AsyncOpenAI

from docintel.core.cache import AnalysisCache, TTLCache
from docintel.core.chunking import TextChunker, tiktoken_counter
from docintel.core.config import Settings
from docintel.core.embeddings import OpenAIEmbedder
from docintel.core.file_text import FileTextExtractor
from docintel.core.grounding import ExcerptMatcher, LexicalOverlapMatcher
from docintel.core.interfaces import Completion, Embedder, Storage, TextExtractor
from docintel.core.llm import OpenAICompletion
from docintel.core.logging import get_logger
from docintel.core.retrieval import Retriever
from docintel.core.upload_limit import UploadLimiter
from docintel.db.storage import SupabaseStorage
from docintel.db.supabase_client import create_supabase

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    storage: Storage
    embedder: Embedder
    completion: Completion
    chunker: TextChunker
    extractor: TextExtractor
    retriever: Retriever
    upload_limiter: UploadLimiter
    analysis_cache: AnalysisCache = field(default_factory=AnalysisCache)
    matcher: ExcerptMatcher = field(default_factory=LexicalOverlapMatcher)


def assemble_container(
    settings: Settings,
    storage: Storage,
    embedder: Embedder,
    completion: Completion,
    chunker: TextChunker | None = None,
    extractor: TextExtractor | None = None,
    matcher: ExcerptMatcher | None = None,
) -> ServiceContainer:
    """Wire a container from already-constructed capabilities."""
    query_cache: TTLCache[list[float]] = TTLCache(
        max_size=settings.TTL_CACHE_MAX_SIZE,
        default_ttl=settings.TTL_CACHE_DEFAULT_SECONDS,
    )
    return ServiceContainer(
        settings=settings,
        storage=storage,
        embedder=embedder,
        completion=completion,
        chunker=chunker
        or TextChunker(settings.CHUNK_SIZE_TOKENS, settings.CHUNK_OVERLAP_TOKENS),
        extractor=extractor or FileTextExtractor(max_pdf_pages=settings.MAX_PDF_PAGES),
        retriever=Retriever(storage, embedder, query_cache=query_cache),
        upload_limiter=UploadLimiter(storage, limit=settings.WEEKLY_UPLOAD_LIMIT),
        matcher=matcher or LexicalOverlapMatcher(),
    )


def build_container(settings: Settings) -> ServiceContainer:
    """Create production clients from settings and wire them together."""
    openai_client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    container = assemble_container(
        settings,
        storage=SupabaseStorage(create_supabase(settings)),
        embedder=OpenAIEmbedder(
            openai_client,
            model=settings.EMBEDDING_MODEL,
            dimension=settings.EMBEDDING_DIM,
            batch_size=settings.EMBEDDING_BATCH_SIZE,
        ),
        completion=OpenAICompletion(openai_client, model=settings.CHAT_MODEL),
        chunker=TextChunker(
            settings.CHUNK_SIZE_TOKENS,
            settings.CHUNK_OVERLAP_TOKENS,
            token_counter=tiktoken_counter(),
        ),
    )
    logger.info(f"Service container ready (env={settings.DOCINTEL_ENV})")
    return container
