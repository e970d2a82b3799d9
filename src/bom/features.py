"""
Feature Cascade

Confirmed design features switch catalog components on and off. The rule
table below is the only place that knows which component names a feature
governs; the resolver itself is generic over it.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from .catalog import Catalog, get_catalog, normalize_key
from .models import BomLineItem, ConfirmedFeatures

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureRule:
    # component names removed when the flag is confirmed False
    governs: Tuple[str, ...]
    # component whose presence means the feature is already satisfied
    anchor: str
    # catalog row keys appended when the flag is confirmed True
    additions: Tuple[str, ...] = ()
    # optional: feature field -> {value: additions}; first matching field wins
    variants: Mapping[str, Mapping[str, Tuple[str, ...]]] = field(default_factory=dict)

    def addition_keys(self, features: ConfirmedFeatures) -> Tuple[str, ...]:
        for field_name, choices in self.variants.items():
            value = getattr(features, field_name, None)
            if isinstance(value, str) and normalize_key(value) in choices:
                return choices[normalize_key(value)]
        return self.additions


FEATURE_RULES = {
    "hasDrawcord": FeatureRule(
        governs=("Drawcord", "Grommets", "Cord Lock"),
        anchor="Drawcord",
        additions=("drawcord", "grommets"),
    ),
    "hasZipper": FeatureRule(
        governs=("Zipper",),
        anchor="Zipper",
        additions=("zipper_metal",),
        variants={"zipperType": {"full_front_nylon": ("zipper_nylon",)}},
    ),
    # Kangaroo pockets are cut from body fabric; side-seam pockets and all sweatpants need a bag
    "hasPockets": FeatureRule(
        governs=("Pocket Bag",),
        anchor="Pocket Bag",
        additions=(),
        variants={
            "pocketType": {"side_seam": ("pocket_bag",)},
            "subType": {"sweatpants": ("pocket_bag",)},
        },
    ),
}

FeaturesInput = Union[ConfirmedFeatures, Mapping]


def _as_features(features: FeaturesInput) -> ConfirmedFeatures:
    if isinstance(features, ConfirmedFeatures):
        return features
    return ConfirmedFeatures.model_validate(dict(features or {}))


def removal_set(features: ConfirmedFeatures,
                rules: Mapping[str, FeatureRule] = FEATURE_RULES) -> set:
    """Component names governed by flags confirmed absent."""
    removals = set()
    for name, rule in rules.items():
        if features.flag(name) is False:
            removals.update(rule.governs)
    return removals


def apply_features(baseline: Iterable[BomLineItem], features: FeaturesInput,
                   catalog: Optional[Catalog] = None,
                   rules: Mapping[str, FeatureRule] = FEATURE_RULES) -> List[BomLineItem]:
    """Compute the final BOM from a baseline and confirmed features.

    All removals are applied before any addition. Additions go at the end,
    in rule order, and only for features whose anchor component is missing.
    Rows already in the baseline are never deduplicated; catalog additions
    skip components that are already present. Running this twice with the
    same features is a no-op the second time.
    """
    catalog = catalog or get_catalog()
    features = _as_features(features)
    baseline = list(baseline)

    removals = removal_set(features, rules)
    filtered = [item for item in baseline if item.component not in removals]

    present = {item.component for item in filtered}
    next_order = max((item.sort_order for item in filtered), default=-1) + 1
    additions = []

    for name, rule in rules.items():
        if features.flag(name) is not True or rule.anchor in present:
            continue
        for key in rule.addition_keys(features):
            row = catalog.catalog_row(key)
            if row is None or row.component in present:
                continue
            additions.append(row.model_copy(update={"sort_order": next_order}))
            present.add(row.component)
            next_order += 1

    if removals or additions:
        logger.debug(
            f"Feature cascade: removed {len(baseline) - len(filtered)} rows, "
            f"added {[a.component for a in additions]}"
        )
    return filtered + additions


def default_features(sub_type: Optional[str]) -> ConfirmedFeatures:
    """Default features for a subtype, used before the designer confirms any."""
    sub_type = normalize_key(sub_type) or "pullover_hoodie"
    is_pants = sub_type == "sweatpants"
    is_hoodie = sub_type not in ("crewneck", "sweatpants")
    is_zip = sub_type == "zip_hoodie"

    if is_zip:
        pocket_type = "split_kangaroo"
    elif is_pants:
        pocket_type = "side_seam"
    elif is_hoodie:
        pocket_type = "single_kangaroo"
    else:
        pocket_type = "none"

    return ConfirmedFeatures(
        hasHood=is_hoodie,
        hasDrawcord=is_hoodie or is_pants,
        hasZipper=is_zip,
        hasPockets=is_hoodie or is_pants,
        hasRibCuffs=True,
        hasRibHem=not is_pants,
        hasThumbHoles=False,
        pocketType=pocket_type,
        zipperType="full_front_metal" if is_zip else "none",
        hoodStyle="standard_2panel" if is_hoodie else "none",
        subType=sub_type,
    )


def pom_groups(features: FeaturesInput) -> List[str]:
    """Measurement groups to show for a feature set. Body and sleeve always."""
    features = _as_features(features)
    groups = ["body", "sleeve"]
    if features.hasHood:
        groups.append("hood")
    if features.hasPockets:
        groups.append("pocket")
    if features.hasZipper:
        groups.append("zipper")
    if features.hasDrawcord:
        groups.append("drawcord")
    return groups
