"""
Keyword tables for AI relevance filtering and category tagging.

One table (``CATEGORIES``) maps each category label to its keywords; it is
consumed both by category tagging and by the keyword term of the
repository score, so the two can never drift apart.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator

OTHER_CATEGORY = "Other"


@dataclass(frozen=True)
class Category:
    """A model/vendor category with its detection keywords."""

    label: str
    keywords: tuple[str, ...]

    def matches(self, text: str) -> bool:
        """Return True if any keyword occurs in the lowercased text."""
        text_lower = text.lower()
        return any(kw.lower() in text_lower for kw in self.keywords)


CATEGORIES: tuple[Category, ...] = (
    Category(
        label="OpenAI",
        keywords=(
            "chatgpt", "gpt", "gpt-3", "gpt-4", "gpt-3.5", "gpt3", "gpt4", "openai",
            "dall-e", "dall-e-2", "dall-e-3", "whisper", "sora",
        ),
    ),
    Category(
        label="Gemini",
        keywords=(
            "gemini", "gemini-pro", "gemini-ultra", "google-gemini", "bard",
            "google-bard", "palm", "palm-2",
        ),
    ),
    Category(
        label="Claude",
        keywords=("claude", "anthropic", "claude-instant", "claude-2", "claude-3"),
    ),
    Category(
        label="Mistral",
        keywords=(
            "mistral", "mistral-ai", "mistral-7b", "mistral-medium",
            "mistral-large", "mistral-small", "mixtral",
        ),
    ),
    Category(
        label="Llama",
        keywords=("llama", "llama-2", "llama-3", "llama2", "llama3", "meta-llama", "meta-ai"),
    ),
    Category(
        label="Chinese Models",
        keywords=(
            "文心一言", "文心", "百度", "ernie", "ernie-bot", "baidu", "wenxin",
            "通义千问", "通义", "阿里", "qwen", "qwen-vl", "alibaba",
            "讯飞星火", "讯飞", "xunfei", "sparkdesk",
            "腾讯混元", "hunyuan", "tencent", "混元",
            "智谱", "chatglm", "glm", "glm-4", "glm-3",
            "moonshot", "kimi", "tiangong", "天工",
        ),
    ),
    Category(
        label="Dev Tools",
        keywords=(
            "cursor", "cody", "github-copilot", "copilot", "deepseek", "deepseek-coder",
            "tabnine", "replit", "jetbrains", "intellij", "vscode", "neovim",
        ),
    ),
    Category(
        label="Other Models",
        keywords=(
            "stable-diffusion", "midjourney", "falcon", "vicuna", "pythia", "polylm",
            "phi-2", "phi-3", "cohere", "command-r", "internlm", "internlm2",
            "qingyan", "aquila", "minimax",
        ),
    ),
)


# Broad AI vocabulary used to decide whether trending rows are AI-related
AI_KEYWORDS: tuple[str, ...] = (
    # LLMs and general AI
    "llm", "gpt", "bert", "transformer", "nlp", "ai", "machine-learning", "ml",
    "neural-network", "deep-learning", "artificial-intelligence", "agi", "agent",
    "reinforcement-learning", "natural-language-processing", "diffusion",
    "generative-ai", "language-model", "stable-diffusion", "openai", "huggingface",
    "langchain", "chatgpt", "claude", "gemini", "mistral", "large-language-model",
    "multimodal", "rlhf", "alignment",
    # Tooling and applications
    "ai-agent", "ai-assistant", "prompt-engineering", "fine-tuning",
    "vector-database", "semantic-search", "embedding", "llama", "mixtral",
    "vicuna", "falcon", "qwen", "baichuan", "glm", "ernie", "cohere",
    "tokenizer", "attention", "vllm", "rag", "retrieval-augmented",
    "text-to-image", "text-to-video", "text-to-speech", "speech-to-text",
    "image-generation", "computer-vision", "vision-language", "knowledge-graph",
    "sora", "midjourney", "dall-e", "tensor", "neural", "gan", "vae", "diffuser",
    "latent", "inference",
    # Frameworks and runtimes
    "tensorflow", "pytorch", "onnx", "jax", "keras", "mxnet", "scikit-learn",
    "libtorch", "onnxruntime", "dlib", "opencv", "ncnn", "milvus", "faiss",
    "cuda", "cudnn", "tensorrt", "openvino", "gorgonia", "gonum", "gocv",
    "ollama", "langchaingo", "go-openai", "weaviate",
)

# Strong matches accepted before the broad list is consulted
CORE_AI_KEYWORDS: tuple[str, ...] = (
    "llm", "ai", "ml", "gpt", "bert", "nlp", "language-model",
    "machine-learning", "deep-learning",
)

# Free-text AI vocabulary for article titles (multi-word, space separated)
AI_ARTICLE_TERMS: tuple[str, ...] = (
    "ai", "artificial intelligence", "machine learning", "ml", "llm",
    "large language model", "language model", "chatgpt", "gpt", "claude",
    "gemini", "openai", "anthropic", "llama", "mistral", "huggingface",
    "neural network", "deep learning", "diffusion", "transformer", "nlp",
    "bert", "rlhf", "fine-tuning", "rag", "agent",
)

# Terms extracted into a paper's keyword list
PAPER_KEYWORD_TERMS: tuple[str, ...] = (
    "ai", "artificial intelligence", "machine learning", "ml", "llm",
    "large language model", "chatgpt", "gpt", "claude", "gemini", "openai",
    "anthropic", "llama", "mistral", "huggingface", "neural", "deep learning",
    "diffusion", "transformer", "nlp", "rag", "agents", "multimodal", "vision",
    "speech", "bert", "rlhf", "fine-tuning",
)

NOVELTY_TERMS: tuple[str, ...] = (
    "new", "novel", "first", "innovative", "breakthrough", "state-of-the-art",
    "sota", "cutting-edge", "pioneering", "groundbreaking", "unprecedented",
)

REPRODUCIBILITY_TERMS: tuple[str, ...] = (
    "code", "github", "implementation", "dataset", "public", "available",
    "open-source", "repository", "replicate", "reproduce",
)

TECHNIQUE_TERMS: tuple[str, ...] = (
    "transformer", "attention mechanism", "fine-tuning", "reinforcement learning",
    "diffusion model", "generative model", "multi-modal", "RLHF",
    "contrastive learning",
)

# arXiv subject classes mapped to readable technique names
ARXIV_TECHNIQUES: dict[str, str] = {
    "cs.CL": "Natural Language Processing",
    "cs.CV": "Computer Vision",
    "cs.AI": "Artificial Intelligence",
    "cs.LG": "Machine Learning",
}

# Model names appended to a paper's keywords when any of their terms occur
PAPER_MODEL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Cursor": ("cursor", "cursor ai"),
    "DeepSeek": ("deepseek", "deepseek-coder", "deepseek-llm"),
    "Hunyuan": ("hunyuan", "tencent hunyuan"),
    "文心一言": ("文心一言", "wenxin", "ernie bot", "ernie", "baidu"),
    "GPT": ("gpt", "gpt-4", "gpt-3", "chatgpt", "openai"),
    "Claude": ("claude", "anthropic"),
    "Gemini": ("gemini", "google gemini"),
    "Llama": ("llama", "meta llama", "llama 2", "llama 3"),
    "Mistral": ("mistral ai", "mistral"),
    "Qwen": ("qwen", "tongyi qianwen", "通义千问"),
    "ChatGLM": ("chatglm", "glm", "智谱"),
}

# Search terms for the on-demand model repository search
MODEL_SEARCH_TERMS: dict[str, tuple[str, ...]] = {
    "cursor": ("getcursor", "cursor-ai", "cursor ai", "cursor-editor"),
    "deepseek": ("deepseek-ai", "deepseek coder", "deepseek-coder", "deepseek llm"),
    "hunyuan": ("tencent hunyuan", "hunyuanvideo", "hunyuandit", "tencent-hunyuan"),
    "claude": ("anthropic claude", "claude-3", "claude-instant", "anthropic-claude"),
    "gemini": ("google gemini", "google-gemini", "gemini-pro", "gemini-ultra"),
    "llama": ("meta-llama", "llama3", "llama-3", "llama-2", "meta llama"),
    "qwen": ("alibaba qwen", "qwenlm", "qwen-vl", "qwen-7b", "aliyun qwen"),
    "gpt": ("chatgpt", "gpt-4", "gpt-3.5", "openai gpt", "gpt-turbo"),
    "文心一言": ("文心一言", "baidu ernie", "wenxin", "百度文心"),
}


def iter_category_keywords() -> Iterator[str]:
    """Yield every distinct keyword of the category table, in table order."""
    seen: set[str] = set()
    for category in CATEGORIES:
        for keyword in category.keywords:
            if keyword not in seen:
                seen.add(keyword)
                yield keyword


def tag_categories(text: str) -> list[str]:
    """Return the sorted labels whose keywords occur in ``text``.

    Falls back to ``[OTHER_CATEGORY]`` when nothing matches.
    """
    labels = sorted(c.label for c in CATEGORIES if c.matches(text))
    return labels or [OTHER_CATEGORY]


def count_hits(text: str, keywords: Iterable[str]) -> int:
    """Count keywords occurring as substrings of the lowercased text."""
    text_lower = text.lower()
    return sum(1 for kw in keywords if kw.lower() in text_lower)


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    text_lower = text.lower()
    return any(kw.lower() in text_lower for kw in keywords)


def matching_terms(text: str, terms: Iterable[str]) -> list[str]:
    """Terms occurring in the lowercased text, in table order."""
    text_lower = text.lower()
    return [term for term in terms if term.lower() in text_lower]


def is_ai_article(title: str) -> bool:
    return contains_any(title, AI_ARTICLE_TERMS)


def model_search_terms(model: str) -> tuple[str, ...]:
    """Search terms for a model; unknown names search for themselves."""
    return MODEL_SEARCH_TERMS.get(model.lower(), MODEL_SEARCH_TERMS.get(model, (model,)))
