"""Static catalog of the models the gateway can reach upstream."""

from dataclasses import replace
from typing import Dict, List, Optional

from .logger import logger
from .models import GenerationParams, ModelDescriptor

CUSTOM_MODEL_ID = "custom"
DEFAULT_MODEL_ID = "chatbot"

DEFAULT_PARAMS = GenerationParams(
    temperature=0.7,
    max_tokens=1024,
    top_p=0.9,
    frequency_penalty=0.0,
    presence_penalty=0.0,
    stop_sequences=(),
)

CODE_GENERATION = "Code Generation"
CODE_ANALYSIS = "Code Analysis Tools"
GENERAL_PURPOSE = "General Purpose"

CATEGORY_DESCRIPTIONS = {
    CODE_GENERATION: "Models specialized in generating code across various programming languages",
    CODE_ANALYSIS: "Advanced models that analyze, review, and improve existing code",
    GENERAL_PURPOSE: "Versatile models suitable for various text generation tasks",
}

_DESCRIPTORS = (
    ModelDescriptor(
        id="deepseek-coder",
        upstream_path="deepseek-ai/deepseek-coder-6.7b-instruct",
        default_params=DEFAULT_PARAMS,
        label="DeepSeek Coder",
        category=CODE_GENERATION,
        description="Specialized in coding tasks with strong performance on code completion",
        sample_prompt="Generate a React component that fetches and displays data from an API",
    ),
    ModelDescriptor(
        id="codellama",
        upstream_path="codellama/CodeLlama-7b-hf",
        default_params=DEFAULT_PARAMS,
        label="CodeLlama 7B",
        category=CODE_GENERATION,
        description="Optimized for coding tasks with capabilities across multiple languages",
        sample_prompt="Write a Python function to parse JSON data from a file",
    ),
    ModelDescriptor(
        id="autocoder",
        upstream_path="replit/replit-code-v1-3b",
        default_params=DEFAULT_PARAMS,
        label="Replit Code",
        category=CODE_GENERATION,
        description="Lightweight model trained on code completion tasks",
        sample_prompt="Create a JavaScript utility function to format dates",
    ),
    ModelDescriptor(
        id="codestral-22b",
        upstream_path="mistralai/Codestral-22B-v0.1",
        default_params=DEFAULT_PARAMS,
        label="Codestral 22B",
        category=CODE_GENERATION,
        description="Large code model with enhanced capabilities for complex programming tasks",
        sample_prompt="Implement a binary search tree in TypeScript with insert, search, and delete methods",
    ),
    ModelDescriptor(
        id="codeqwen-7b",
        upstream_path="Qwen/CodeQwen1.5-7B-Chat",
        default_params=DEFAULT_PARAMS,
        label="CodeQwen 7B",
        category=CODE_GENERATION,
        description="Multi-language code generation model optimized for completion tasks",
        sample_prompt="Build a Flask API endpoint that queries a database",
    ),
    ModelDescriptor(
        id="python-reviewer",
        upstream_path="elsanns/xwin-lm-7b-python-code-review",
        is_tool=True,
        default_params=DEFAULT_PARAMS,
        label="Python Code Reviewer",
        category=CODE_ANALYSIS,
        description="Specialized in reviewing and improving Python code quality",
        sample_prompt="Review this Python code for errors and best practices",
    ),
    ModelDescriptor(
        id="code-review-chains",
        upstream_path="microsoft/CodeReviewer",
        is_tool=True,
        default_params=DEFAULT_PARAMS,
        label="Code Reviewer",
        category=CODE_ANALYSIS,
        description="Analyzes code quality and suggests improvements across languages",
        sample_prompt="Please review this JavaScript code",
    ),
    ModelDescriptor(
        id="llama-cpp-agent",
        upstream_path="abacusai/Llama-2-70b-chat-hf",
        is_tool=True,
        default_params=DEFAULT_PARAMS,
        label="Code Agent",
        category=CODE_ANALYSIS,
        description="Powerful tool for analyzing and improving complex code structures",
        sample_prompt="Analyze this TypeScript code and suggest improvements",
    ),
    ModelDescriptor(
        id=DEFAULT_MODEL_ID,
        upstream_path="mistralai/Mistral-7B-Instruct-v0.2",
        default_params=DEFAULT_PARAMS,
        label="Mistral 7B",
        category=GENERAL_PURPOSE,
        description="General-purpose language model for various text generation tasks",
        sample_prompt="Explain the concept of RESTful APIs in simple terms",
    ),
    ModelDescriptor(
        id=CUSTOM_MODEL_ID,
        upstream_path="",
        default_params=DEFAULT_PARAMS,
        label="Custom Model",
        category=GENERAL_PURPOSE,
        description="Your own Hugging Face model (requires full model path)",
        sample_prompt="Define your custom prompt based on the model you choose",
    ),
)

CATALOG: Dict[str, ModelDescriptor] = {descriptor.id: descriptor for descriptor in _DESCRIPTORS}


def resolve(model_id: str, custom_path: Optional[str] = None) -> ModelDescriptor:
    """
    Resolve a logical model id to its descriptor.

    ``custom`` takes its upstream path from the caller. Unknown ids degrade
    to the default descriptor instead of failing the request.
    """
    if model_id == CUSTOM_MODEL_ID:
        return replace(CATALOG[CUSTOM_MODEL_ID], upstream_path=(custom_path or "").strip().strip("/"))

    descriptor = CATALOG.get(model_id)
    if descriptor is None:
        logger.warning("unknown model '{}', falling back to '{}'", model_id, DEFAULT_MODEL_ID)
        return CATALOG[DEFAULT_MODEL_ID]
    return descriptor


def is_tool(model_id: str) -> bool:
    descriptor = CATALOG.get(model_id)
    return descriptor.is_tool if descriptor else False


def list_models() -> List[ModelDescriptor]:
    return list(_DESCRIPTORS)


def categories() -> List[Dict]:
    """Group the catalog by category, in catalog order."""
    grouped: Dict[str, List[ModelDescriptor]] = {}
    for descriptor in _DESCRIPTORS:
        grouped.setdefault(descriptor.category, []).append(descriptor)

    return [
        {
            "name": name,
            "description": CATEGORY_DESCRIPTIONS.get(name, ""),
            "models": [
                {
                    "value": descriptor.id,
                    "label": descriptor.label,
                    "isTool": descriptor.is_tool,
                    "description": descriptor.description,
                    "samplePrompt": descriptor.sample_prompt,
                }
                for descriptor in descriptors
            ],
        }
        for name, descriptors in grouped.items()
    ]
