"""Decide which settings need the operator's attention."""

from collections.abc import Iterable, Mapping
from typing import Optional

from tstune.conffile.parsers import TunableParseResult
from tstune.core.exceptions import RecommenderError
from tstune.services.tuning import FloatParser, Recommender, get_float_parser

FUDGE_FACTOR = 0.05


def is_close_enough(actual: float, target: float, fudge: float = FUDGE_FACTOR) -> bool:
    """Whether actual is within a relative distance of target."""
    if target == 0:
        return actual == 0
    return abs((target - actual) / target) <= fudge


def compute_visible_keys(
    keys: Iterable[str],
    parse_results: Mapping[str, TunableParseResult],
    recommender: Recommender,
    float_parser: Optional[FloatParser] = None,
) -> set[str]:
    """Select the keys whose current value should be shown and updated.

    A key is visible when the recommender has a value for it and the
    setting is missing, commented out, unparseable, or more than 5% away
    from the recommendation.

    Args:
        keys: Setting keys of one settings group
        parse_results: Parse results found in the config file
        recommender: Recommender for the settings group
        float_parser: Parser for numeric comparison; chosen from the
            recommender when omitted

    Returns:
        Set of visible keys

    Raises:
        RecommenderError: If a recommended value cannot be parsed
    """
    parser = float_parser or get_float_parser(recommender)
    visible: set[str] = set()

    for key in keys:
        recommended = recommender.recommend(key)
        if recommended is None:
            continue

        result = parse_results.get(key)
        if result is None or result.missing or result.commented:
            visible.add(key)
            continue
        if result.value == recommended:
            continue

        try:
            actual = parser.parse_float(result.value)
        except ValueError:
            visible.add(key)
            continue

        try:
            target = parser.parse_float(recommended)
        except ValueError as e:
            raise RecommenderError(
                f"unexpected parsing problem with recommended value for {key}",
                details=[str(e)],
            ) from e

        if not is_close_enough(actual, target):
            visible.add(key)

    return visible
