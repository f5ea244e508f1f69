"""OpenAI embeddings generation with batching and validation."""

from openai import AsyncOpenAI

from docintel.core.errors import UpstreamServiceError
from docintel.core.logging import get_logger

logger = get_logger(__name__)


class OpenAIEmbedder:
    """Order-preserving embedder backed by the OpenAI embeddings API."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        batch_size: int = 64,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.client = client
        self.model = model
        self.dimension = dimension
        self.batch_size = batch_size

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for a list of texts.

        Batches are sent one after another; a failing batch aborts the rest.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors, in the same order as texts

        Raises:
            UpstreamServiceError: If the API call fails or returns a wrong dimension
        """
        if not texts:
            return []

        embeddings: list[list[float]] = []
        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size

        for batch_num, start in enumerate(range(0, len(texts), self.batch_size), start=1):
            batch = texts[start : start + self.batch_size]
            embeddings.extend(await self._embed_batch(batch, batch_num, total_batches))

        logger.info(
            f"Generated {len(embeddings)} embeddings using {self.model}",
            extra={"model": self.model, "count": len(embeddings)},
        )
        return embeddings

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single string (e.g. a search query)."""
        return (await self.embed([text]))[0]

    async def _embed_batch(
        self, batch: list[str], batch_num: int, total_batches: int
    ) -> list[list[float]]:
        try:
            response = await self.client.embeddings.create(model=self.model, input=batch)
        except Exception as e:
            logger.error(f"Embedding batch {batch_num}/{total_batches} failed: {e}")
            raise UpstreamServiceError("embedding", str(e)) from e

        # The API does not promise to return items in submission order
        items = sorted(response.data, key=lambda item: item.index)

        if len(items) != len(batch):
            raise UpstreamServiceError(
                "embedding",
                f"expected {len(batch)} embeddings in batch {batch_num}, got {len(items)}",
            )

        vectors = []
        for item in items:
            if len(item.embedding) != self.dimension:
                logger.error(
                    f"Embedding dimension mismatch: expected {self.dimension}, "
                    f"got {len(item.embedding)}"
                )
                raise UpstreamServiceError(
                    "embedding",
                    f"Embedding dimension mismatch: expected {self.dimension}, "
                    f"got {len(item.embedding)}",
                )
            vectors.append(list(item.embedding))

        logger.debug(f"Embedded batch {batch_num}/{total_batches} ({len(batch)} texts)")
        return vectors
