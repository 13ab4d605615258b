from typing import List

# Checked in this order; the first match wins
QUICK_STARTERS = ("what", "which", "where", "when")
COMPLEX_KEYWORDS = ("predict", "recommend", "strategy", "plan", "comprehensive")
REASONING_KEYWORDS = ("how", "why", "explain", "analyze", "compare")

QUERY_ROUTES = {
    "quick": ["fast", "balanced"],
    "complex": ["powerful", "balanced"],
    "reasoning": ["balanced", "powerful"],
    "default": ["balanced", "fast"],
}

def classify_query(text: str) -> str:
    """
    Classify a query as quick, complex, reasoning or default.

    Deterministic keyword logic:
    - quick: starts with what/which/where/when
    - complex: mentions predict/recommend/strategy/plan/comprehensive
    - reasoning: mentions how/why/explain/analyze/compare

    Args:
        text: User query or intent string

    Returns:
        "quick", "complex", "reasoning", or "default"
    """
    lowered = (text or "").strip().lower()
    if not lowered:
        return "default"

    if lowered.startswith(QUICK_STARTERS):
        return "quick"

    if any(keyword in lowered for keyword in COMPLEX_KEYWORDS):
        return "complex"

    if any(keyword in lowered for keyword in REASONING_KEYWORDS):
        return "reasoning"

    return "default"

def select_providers(text: str) -> List[str]:
    """Ordered provider identifiers to try first for this query."""
    return list(QUERY_ROUTES[classify_query(text)])
