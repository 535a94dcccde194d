from typing import Dict, List, Tuple

FLIP_TARGET = 20


def make_nickname(user_id: int) -> str:
    """Deterministic participant label for scripted runs."""
    return f'tester-{user_id:03d}'


def summarize_heads(recorded: List[Dict]) -> Dict[str, int]:
    """Totals the host view should show for the given recorded results."""
    heads = sum(r['heads'] for r in recorded)
    return {
        'participant_count': len(recorded),
        'total_trials': len(recorded) * FLIP_TARGET,
        'total_heads': heads,
    }


def percentiles(samples: List[float], ps: Tuple[int, ...] = (50, 90, 95, 99)) -> Dict[int, float]:
    if not samples:
        return {p: 0.0 for p in ps}
    xs = sorted(samples)
    out = {}
    for p in ps:
        k = (len(xs) - 1) * (p / 100.0)
        f = int(k)
        c = min(f + 1, len(xs) - 1)
        if f == c:
            out[p] = xs[f]
        else:
            d0 = xs[f] * (c - k)
            d1 = xs[c] * (k - f)
            out[p] = d0 + d1
    return out
