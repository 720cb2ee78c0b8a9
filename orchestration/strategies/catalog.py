"""Named chain catalog and recommendations"""
from typing import Dict, List, Optional, Tuple
import logging
import re

from orchestration.models import ChainDefinition, ToolCategory

logger = logging.getLogger(__name__)

# Words that point at a category regardless of a chain's own triggers
CATEGORY_KEYWORDS: Dict[ToolCategory, Tuple[str, ...]] = {
    ToolCategory.ANALYSIS: ("analyze", "analysis", "underwrite", "evaluate"),
    ToolCategory.DATA: ("research", "market", "data", "statistics"),
    ToolCategory.COMMUNICATION: ("report", "summary", "summarize", "brief"),
    ToolCategory.AUTOMATION: ("find", "opportunity", "scan", "alert"),
    ToolCategory.INTEGRATION: ("sync", "import", "export"),
}

TRIGGER_SCORE = 3.0
CATEGORY_SCORE = 2.0
MIN_SCORE = 1.0


class ChainCatalog:
    """Registry of reusable chains"""

    def __init__(self, chains: Optional[List[ChainDefinition]] = None):
        self._chains: Dict[str, ChainDefinition] = {}
        for chain in chains or []:
            self.register(chain)

    def register(self, chain: ChainDefinition):
        if chain.id in self._chains:
            raise ValueError(f"Chain '{chain.id}' already registered")
        self._chains[chain.id] = chain
        logger.info(f"Registered chain: {chain.id} ({len(chain.steps)} steps)")

    def get(self, chain_id: str) -> ChainDefinition:
        try:
            return self._chains[chain_id]
        except KeyError:
            raise KeyError(f"Chain not found: {chain_id}") from None

    def __contains__(self, chain_id: str) -> bool:
        return chain_id in self._chains

    def list_all(self) -> List[ChainDefinition]:
        return list(self._chains.values())

    def score(self, chain: ChainDefinition, text: str) -> float:
        lowered = text.lower()
        words = set(re.findall(r"[a-z0-9]+", lowered))
        score = 0.0

        for trigger in chain.triggers:
            if trigger.lower() in lowered:
                score += TRIGGER_SCORE

        if words.intersection(CATEGORY_KEYWORDS.get(chain.category, ())):
            score += CATEGORY_SCORE

        return score

    def recommend(self, text: str, limit: int = 5) -> List[ChainDefinition]:
        """
        Chains relevant to free text, best first.

        Each trigger phrase found in the text scores 3, a category keyword
        scores 2; chains scoring at or below 1 are dropped. Ties keep
        registration order.
        """
        scored = [
            (self.score(chain, text), position, chain)
            for position, chain in enumerate(self._chains.values())
        ]
        ranked = sorted(
            (entry for entry in scored if entry[0] > MIN_SCORE),
            key=lambda entry: (-entry[0], entry[1]),
        )
        return [chain for _, _, chain in ranked[:limit]]
