"""Concurrent execution of independent sub-chains"""
from typing import Any, Dict, List, Optional, Union
import asyncio
import logging

from orchestration.core.context import ExecutionContext
from orchestration.models import ChainDefinition, ChainResult
from orchestration.models.chain import StepSpec
from .chain import ChainStrategy

logger = logging.getLogger(__name__)

SubChain = Union[ChainDefinition, List[StepSpec]]


class ParallelStrategy:
    """
    Run sub-chains that share no data concurrently.

    Steps inside each sub-chain keep strict ordering; only whole
    sub-chains overlap.
    """

    def __init__(
        self,
        chain_strategy: ChainStrategy,
        max_concurrent: int = 10,
    ):
        self.chain_strategy = chain_strategy
        self.semaphore = asyncio.Semaphore(max_concurrent)

    async def execute(
        self,
        sub_chains: List[SubChain],
        initial_params: Optional[Dict[str, Any]] = None,
        context: Optional[ExecutionContext] = None,
    ) -> List[ChainResult]:
        """
        Execute sub-chains in parallel

        Returns:
            One ChainResult per sub-chain (in original order)
        """
        context = context or ExecutionContext()
        logger.info(f"Executing {len(sub_chains)} sub-chain(s) in parallel")

        results = await asyncio.gather(*(
            self._execute_with_semaphore(sub_chain, initial_params, context, i)
            for i, sub_chain in enumerate(sub_chains)
        ))

        success_count = sum(1 for r in results if r.success)
        logger.info(
            f"Parallel execution complete: "
            f"{success_count}/{len(results)} sub-chain(s) succeeded"
        )
        return list(results)

    async def _execute_with_semaphore(
        self,
        sub_chain: SubChain,
        initial_params: Optional[Dict[str, Any]],
        context: ExecutionContext,
        index: int,
    ) -> ChainResult:
        async with self.semaphore:
            if isinstance(sub_chain, ChainDefinition):
                return await self.chain_strategy.execute(
                    sub_chain.steps,
                    initial_params,
                    context,
                    chain_id=sub_chain.id,
                )
            return await self.chain_strategy.execute(
                sub_chain,
                initial_params,
                context,
                chain_id=f"{context.request_id}-sub{index}",
            )
