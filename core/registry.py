"""Built-in solution provider registry.

Maps provider identifiers to their implementing classes.  Values are
dotted-path strings resolved lazily on first use so that importing the
orchestrator does not pull in every provider's HTTP stack.

Usage::

    from core.registry import get_provider_class

    cls = get_provider_class("2captcha")
    if cls:
        provider = cls()
"""

import importlib
from typing import Dict, Optional, Union

# ---------------------------------------------------------------------------
# Central Registry
# ---------------------------------------------------------------------------
# Values are either a class reference or a dotted-path string
# ``"module.ClassName"`` that is resolved lazily on first use.
PROVIDER_REGISTRY: Dict[str, Union[type, str]] = {
    "2captcha": "solvers.twocaptcha.TwoCaptchaProvider",
    "twocaptcha": "solvers.twocaptcha.TwoCaptchaProvider",
}


def get_provider_class(provider_id: str) -> Optional[type]:
    """Resolve a provider class from the registry by id.

    Performs case-insensitive lookup.  Dotted-path values are imported
    lazily and the class attribute is returned.

    Args:
        provider_id: Provider identifier (e.g. ``"2captcha"``).

    Returns:
        The provider class, or ``None`` if *provider_id* is not registered.
    """
    cls_or_str = PROVIDER_REGISTRY.get((provider_id or "").lower())
    if not cls_or_str:
        return None

    if isinstance(cls_or_str, str):
        module_path, class_name = cls_or_str.rsplit('.', 1)
        module = importlib.import_module(module_path)
        return getattr(module, class_name)

    return cls_or_str
