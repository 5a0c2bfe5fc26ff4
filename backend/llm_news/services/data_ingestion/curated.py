"""
Curated list of well-known AI paper implementations.

No network call: the records carry only what is known statically. Stars,
activity and topics are filled by the repository enricher.
"""

from typing import NamedTuple, Optional

import httpx

from llm_news.models.domain import ContentType, Repository
from llm_news.services.data_ingestion.base import BaseFetcher, SourceConfig, SourceType


class CuratedRepo(NamedTuple):
    name: str
    description: str
    paper_title: str
    paper_url: str


LLAMA_PAPER = (
    "LLaMA: Open and Efficient Foundation Language Models",
    "https://arxiv.org/abs/2302.13971",
)

CURATED_REPOS: tuple[CuratedRepo, ...] = (
    CuratedRepo(
        "lucidrains/DALLE2-pytorch",
        "Implementation of DALL-E 2, OpenAI's updated text-to-image synthesis neural network, in PyTorch",
        "Hierarchical Text-Conditional Image Generation with CLIP Latents",
        "https://arxiv.org/abs/2204.06125",
    ),
    CuratedRepo("facebookresearch/llama", "Inference code for LLaMA models", *LLAMA_PAPER),
    CuratedRepo(
        "jina-ai/clip-as-service",
        "Embed images and sentences into fixed-length vectors with CLIP",
        "Learning Transferable Visual Models From Natural Language Supervision",
        "https://arxiv.org/abs/2103.00020",
    ),
    CuratedRepo(
        "huggingface/diffusers",
        "Diffusers: State-of-the-art diffusion models for image and audio generation in PyTorch",
        "High-Resolution Image Synthesis with Latent Diffusion Models",
        "https://arxiv.org/abs/2112.10752",
    ),
    CuratedRepo(
        "Lightning-AI/lit-llama",
        "Implementation of the LLaMA language model based on nanoGPT. "
        "Supports QLoRA, LoRA, LLaMA-Adapter, and more",
        *LLAMA_PAPER,
    ),
    CuratedRepo(
        "salesforce/BLIP",
        "PyTorch implementation of BLIP: Bootstrapping Language-Image Pre-training "
        "for Unified Vision-Language Understanding and Generation",
        "BLIP: Bootstrapping Language-Image Pre-training for Unified "
        "Vision-Language Understanding and Generation",
        "https://arxiv.org/abs/2201.12086",
    ),
    CuratedRepo(
        "microsoft/LoRA",
        "Code for loralib, an implementation of 'LoRA: Low-Rank Adaptation of Large Language Models'",
        "LoRA: Low-Rank Adaptation of Large Language Models",
        "https://arxiv.org/abs/2106.09685",
    ),
    CuratedRepo(
        "chroma-core/chroma",
        "The AI-native open-source embedding database",
        "Chroma: The AI-native open-source embedding database",
        "https://www.trychroma.com/",
    ),
    CuratedRepo("ggerganov/llama.cpp", "Port of Facebook's LLaMA model in C/C++", *LLAMA_PAPER),
    CuratedRepo(
        "abachaa/MedVidQA",
        "MedVidQA: A dataset of medical video-based question answering",
        "MedVidQA: A Medical Video Question Answering Challenge",
        "https://arxiv.org/abs/2201.12888",
    ),
)


def create_curated_config() -> SourceConfig:
    return SourceConfig(
        name="GitHub AI Papers",
        source_type=SourceType.STATIC,
        base_url="https://github.com",
        priority=1,
    )


class CuratedRepoFetcher(BaseFetcher[Repository]):
    """Serves the static list of paper implementations."""

    content_type = ContentType.REPOSITORIES

    def __init__(
        self,
        config: Optional[SourceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        repos: tuple[CuratedRepo, ...] = CURATED_REPOS,
    ):
        super().__init__(config or create_curated_config(), transport)
        self.repos = repos

    async def _fetch(self, client: httpx.AsyncClient) -> list[Repository]:
        return [
            Repository(
                name=entry.name,
                url=f"{self.config.base_url}/{entry.name}",
                description=entry.description,
                source=self.name,
                paper_title=entry.paper_title,
                paper_url=entry.paper_url,
            )
            for entry in self.repos
        ]
