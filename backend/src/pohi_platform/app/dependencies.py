"""FastAPI dependency providers.

The repository is a process-wide singleton because it owns the per-entity
locks. Tests replace any of these through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends

from pohi_platform.agents.logistics_agent import LogisticsAgent
from pohi_platform.agents.matchmaking_agent import MatchmakingAgent
from pohi_platform.infra.database import async_session
from pohi_platform.infra.gemini_client import TextGenerator, build_text_generator
from pohi_platform.infra.kv_store import SqlKeyValueStore
from pohi_platform.infra.repository import MarketplaceRepository
from pohi_platform.services.load_sequencer import LoadSequencer
from pohi_platform.services.match_engine import MatchEngine


@lru_cache
def get_repository() -> MarketplaceRepository:
    return MarketplaceRepository(SqlKeyValueStore(async_session))


@lru_cache
def get_text_generator() -> Optional[TextGenerator]:
    return build_text_generator()


def get_matchmaking_agent(
    text_generator: Optional[TextGenerator] = Depends(get_text_generator),
) -> MatchmakingAgent:
    return MatchmakingAgent(text_generator)


def get_logistics_agent(
    text_generator: Optional[TextGenerator] = Depends(get_text_generator),
) -> LogisticsAgent:
    return LogisticsAgent(text_generator)


def get_match_engine(
    repository: MarketplaceRepository = Depends(get_repository),
) -> MatchEngine:
    return MatchEngine(repository)


def get_load_sequencer(
    agent: LogisticsAgent = Depends(get_logistics_agent),
) -> LoadSequencer:
    return LoadSequencer(agent)
