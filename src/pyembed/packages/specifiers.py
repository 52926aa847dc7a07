"""PyTorch package specifiers for a CUDA build."""

from typing import List, Optional

TORCH = "torch"
TORCH_COMPANIONS = ("torchvision", "torchaudio")
PYTORCH_INDEX_TEMPLATE = "https://download.pytorch.org/whl/{tag}"

PIN = "=="
LOCAL_VERSION_SEPARATOR = "+"


def torch_specifier(version: Optional[str], cuda_tag: str) -> str:
    """Build the ``torch`` requirement for a version hint and CUDA tag.

    A bare version gets pinned and tagged, a ``torch==X`` hint gets tagged,
    and anything that already carries a local version (``+cuXYZ``) or no pin
    at all is taken as the caller's final word.
    """
    hint = (version or "").strip()
    if not hint:
        return TORCH

    named = hint.lower().startswith(TORCH)

    if LOCAL_VERSION_SEPARATOR in hint:
        return hint if named else f"{TORCH}{PIN}{hint}"

    if named:
        return f"{hint}{LOCAL_VERSION_SEPARATOR}{cuda_tag}" if PIN in hint else hint

    return f"{TORCH}{PIN}{hint}{LOCAL_VERSION_SEPARATOR}{cuda_tag}"


def torch_package_set(version: Optional[str], cuda_tag: str) -> List[str]:
    return [torch_specifier(version, cuda_tag), *TORCH_COMPANIONS]


def pytorch_index_url(cuda_tag: str) -> str:
    return PYTORCH_INDEX_TEMPLATE.format(tag=cuda_tag)
