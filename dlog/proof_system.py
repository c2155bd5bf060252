"""
Async proof service
Runs proof generation and verification off the event loop with batch
rate limiting, artifact expiry and replay rejection.
"""

import asyncio
import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Dict, Optional

from config import ProofConfig

from .dlog_proofs import (
    SUPPORTED_HASH_ALGORITHMS,
    InvalidParameterError,
    ProofArtifact,
    ProofGenerationError,
    create_proof_artifact,
    verify_artifact,
)
from .parameters import GroupParameters

logger = logging.getLogger(__name__)


class BatchLimiter:
    """Rate limiting for batch operations"""

    def __init__(self, max_batch_size: int = 100, max_concurrent: int = 10):
        self.max_batch_size = max_batch_size
        self.max_concurrent = max_concurrent
        self.semaphore = asyncio.Semaphore(max_concurrent)

    async def process_with_limit(self, items, processor):
        """Split items into batches and process them concurrently, preserving order"""
        async def run(batch):
            async with self.semaphore:
                return await processor(batch)

        batches = [items[i:i + self.max_batch_size]
                   for i in range(0, len(items), self.max_batch_size)]
        return await asyncio.gather(*(run(batch) for batch in batches))


class DlogProofSystem:
    """Proof generation and verification for one group"""

    def __init__(self, params: GroupParameters, config: Optional[ProofConfig] = None):
        self.params = params.validate()
        self.config = config or ProofConfig()
        if self.config.hash_algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise InvalidParameterError(
                f"Unsupported hash algorithm: {self.config.hash_algorithm}")
        if self.config.rounds < 1:
            raise InvalidParameterError(
                f"Rounds must be positive, got {self.config.rounds}")

        self.executor = ThreadPoolExecutor(
            max_workers=self.config.parallel_workers)
        # integrity hash -> acceptance time
        self._accepted: Dict[str, float] = {}

        logger.info(
            f"Initialized proof system over {params.bit_length}-bit group "
            f"'{params.name or 'custom'}' ({self.config.rounds} rounds, {self.config.hash_algorithm})")

    def _batch_limiter(self) -> BatchLimiter:
        # Semaphore binds to the running loop, so build one per call
        return BatchLimiter(
            max_batch_size=self.config.max_batch_size,
            max_concurrent=self.config.max_concurrent_proofs)

    async def prove(self, secret: int) -> ProofArtifact:
        """Generate a proof artifact for y = g^secret"""
        loop = asyncio.get_running_loop()
        artifact = await loop.run_in_executor(
            self.executor,
            functools.partial(
                create_proof_artifact,
                secret,
                self.params.generator,
                self.params.modulus,
                rounds=self.config.rounds,
                hash_algorithm=self.config.hash_algorithm,
                ttl_seconds=self.config.proof_ttl_seconds,
            ))

        if not await loop.run_in_executor(self.executor, verify_artifact, artifact):
            raise ProofGenerationError(
                "Generated proof failed self-verification; the modulus is probably not prime")

        logger.info(f"Generated proof in {artifact.generation_time:.3f}s")
        return artifact

    async def verify(self, artifact: ProofArtifact) -> bool:
        """Verify an artifact against this system's group and policy"""
        start_time = time.time()

        if artifact.is_expired():
            logger.warning(f"Proof expired at {artifact.expires_at}")
            return False

        if (artifact.modulus, artifact.generator) != (self.params.modulus, self.params.generator):
            logger.warning("Proof was produced for a different group")
            return False

        if artifact.rounds != self.config.rounds:
            logger.warning(
                f"Proof uses {artifact.rounds} rounds, policy requires {self.config.rounds}")
            return False

        digest = artifact.integrity_hash()
        if self.config.reject_replays and digest in self._accepted:
            logger.warning(f"Proof replay detected: {digest[:16]}...")
            return False

        loop = asyncio.get_running_loop()
        is_valid = await loop.run_in_executor(self.executor, verify_artifact, artifact)

        if is_valid and self.config.reject_replays:
            if digest in self._accepted:
                logger.warning(f"Proof replay detected: {digest[:16]}...")
                return False
            self._accepted[digest] = time.time()

        logger.info(
            f"Verified proof in {time.time() - start_time:.3f}s: {'valid' if is_valid else 'invalid'}")
        return is_valid

    async def prove_batch(self, secrets: List[int]) -> List[ProofArtifact]:
        """Generate proofs for many secrets"""
        async def process(batch):
            return await asyncio.gather(*(self.prove(secret) for secret in batch))

        batches = await self._batch_limiter().process_with_limit(secrets, process)
        return [artifact for batch in batches for artifact in batch]

    async def verify_batch(self, artifacts: List[ProofArtifact]) -> List[bool]:
        """Verify many artifacts, one result per artifact"""
        async def process(batch):
            return await asyncio.gather(*(self.verify(artifact) for artifact in batch))

        batches = await self._batch_limiter().process_with_limit(artifacts, process)
        return [result for batch in batches for result in batch]

    def forget_accepted(self, older_than_seconds: float = 0.0) -> int:
        """Drop remembered proofs accepted more than older_than_seconds ago"""
        cutoff = time.time() - older_than_seconds
        expired = [digest for digest, accepted_at in self._accepted.items()
                   if accepted_at <= cutoff]
        for digest in expired:
            del self._accepted[digest]
        if expired:
            logger.info(f"Forgot {len(expired)} accepted proofs")
        return len(expired)

    def shutdown(self):
        self.executor.shutdown(wait=True)
