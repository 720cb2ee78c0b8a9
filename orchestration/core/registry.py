"""Tool registry: catalog of descriptors and their handlers"""
from typing import Dict, Iterable, List, Optional, Set, Union
import logging
from collections import defaultdict

from orchestration.tools.base import BaseTool, ToolFunction, as_tool
from orchestration.models import (
    ToolDescriptor,
    ToolCategory,
    UnknownToolError,
    DuplicateToolError,
    RegistryFrozenError,
)

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Central registry for all tools, populated once at startup"""

    def __init__(self):
        self._descriptors: Dict[str, ToolDescriptor] = {}
        self._handlers: Dict[str, BaseTool] = {}
        self._categories: Dict[ToolCategory, List[str]] = defaultdict(list)
        self._tags: Dict[str, Set[str]] = defaultdict(set)
        self._frozen = False

    def register(
        self,
        descriptor: ToolDescriptor,
        handler: Union[BaseTool, ToolFunction],
    ):
        """
        Register a tool

        Args:
            descriptor: Immutable tool definition
            handler: BaseTool instance or callable ``fn(params, context)``

        Raises:
            DuplicateToolError: If the id is already registered
            RegistryFrozenError: If the registry has been frozen
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register '{descriptor.id}': registry is read-only"
            )
        if descriptor.id in self._descriptors:
            raise DuplicateToolError(f"Tool '{descriptor.id}' already registered")

        tool = as_tool(handler)
        self._descriptors[descriptor.id] = descriptor
        self._handlers[descriptor.id] = tool
        self._categories[descriptor.category].append(descriptor.id)
        for tag in descriptor.tags:
            self._tags[tag].add(descriptor.id)

        logger.info(f"Registered tool: {descriptor.id} ({descriptor.category.value})")

    def freeze(self):
        """Make the registry read-only"""
        if not self._frozen:
            self._frozen = True
            logger.info(f"Tool registry frozen with {len(self._descriptors)} tool(s)")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, tool_id: str) -> ToolDescriptor:
        """
        Get descriptor by id

        Raises:
            UnknownToolError: If no tool is registered under the id
        """
        try:
            return self._descriptors[tool_id]
        except KeyError:
            raise UnknownToolError(
                f"Unknown tool '{tool_id}'",
                tool_name=tool_id,
            ) from None

    def get_handler(self, tool_id: str) -> BaseTool:
        self.get(tool_id)
        return self._handlers[tool_id]

    def exists(self, tool_id: str) -> bool:
        return tool_id in self._descriptors

    def __contains__(self, tool_id: str) -> bool:
        return self.exists(tool_id)

    def __len__(self) -> int:
        return len(self._descriptors)

    def list_all(self) -> List[str]:
        """All tool ids in registration order"""
        return list(self._descriptors.keys())

    def list_by_category(self, category: ToolCategory) -> List[ToolDescriptor]:
        """Descriptors in a category, in registration order"""
        return [self._descriptors[tid] for tid in self._categories.get(category, [])]

    def list_by_tag(self, tag: str) -> List[str]:
        return [tid for tid in self._descriptors if tid in self._tags.get(tag, set())]

    def dependents_of(self, dependency: str) -> List[str]:
        """Tool ids that declare ``dependency``"""
        return [
            d.id for d in self._descriptors.values()
            if dependency in d.dependencies
        ]

    def alternatives_for(self, tool_id: str) -> List[ToolDescriptor]:
        """
        Candidate replacements for a failing tool.

        The explicit ``fallback_tool`` comes first, followed by tools in
        the same category with strictly lower complexity.
        """
        descriptor = self.get(tool_id)
        candidates: List[ToolDescriptor] = []

        if descriptor.fallback_tool and descriptor.fallback_tool in self._descriptors:
            candidates.append(self._descriptors[descriptor.fallback_tool])

        for other in self.list_by_category(descriptor.category):
            if other.id == tool_id or other in candidates:
                continue
            if other.complexity.weight < descriptor.complexity.weight:
                candidates.append(other)

        return candidates

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[ToolCategory] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> List[ToolDescriptor]:
        """Search for tools by name/description, category and tags"""
        results = list(self._descriptors.values())

        if category:
            results = [d for d in results if d.category == category]

        if tags:
            wanted = set(tags)
            results = [d for d in results if wanted.issubset(d.tags)]

        if query:
            query_lower = query.lower()
            results = [
                d for d in results
                if query_lower in d.id.lower()
                or query_lower in d.name.lower()
                or query_lower in d.description.lower()
            ]

        return results

    def unresolved_dependencies(self, known_groups: Iterable[str]) -> Dict[str, List[str]]:
        """Dependencies that are neither a known group nor a registered tool"""
        groups = set(known_groups)
        missing: Dict[str, List[str]] = {}
        for descriptor in self._descriptors.values():
            unknown = [
                dep for dep in descriptor.dependencies
                if dep not in groups and dep not in self._descriptors
            ]
            if unknown:
                missing[descriptor.id] = unknown
        return missing

    def get_statistics(self) -> Dict:
        return {
            "total_tools": len(self._descriptors),
            "frozen": self._frozen,
            "by_category": {
                category.value: len(tools)
                for category, tools in self._categories.items()
            },
            "cacheable": sum(1 for d in self._descriptors.values() if d.cacheable),
        }

    def describe(self) -> List[Dict]:
        return [d.model_dump(mode="json") for d in self._descriptors.values()]

    async def close(self):
        for handler in self._handlers.values():
            await handler.close()
