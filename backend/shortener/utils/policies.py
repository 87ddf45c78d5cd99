from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Union

from shortener.core.errors import ErrorKind, UrlError


TRACKING_PARAMS = frozenset({
    # UTM family
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "utm_id",
    # Click ids
    "fbclid",
    "gclid",
    "dclid",
    "msclkid",
    "yclid",
    "igshid",
    "twclid",
    "li_fat_id",
    # Mail / analytics ids
    "mc_cid",
    "mc_eid",
    "_ga",
    "_gl",
    "_hsenc",
    "_hsmi",
    "hmb_campaign",
    "hmb_medium",
    "hmb_source",
})

# Structural keys that survive tracking removal even if a tracking list names them
PRESERVED_PARAMS = frozenset({
    "id",
    "page",
    "view",
    "action",
    "type",
    "category",
    "sort",
    "filter",
    "q",
    "query",
    "search",
    "code",
    "token",
    "key",
    "ref",
})


class PolicyName(str, Enum):
    MINIMAL = "MINIMAL"
    BASIC = "BASIC"
    AGGRESSIVE = "AGGRESSIVE"
    SEO_OPTIMIZED = "SEO_OPTIMIZED"
    SECURITY_FOCUSED = "SECURITY_FOCUSED"
    CANONICAL_DEDUP = "CANONICAL_DEDUP"


@dataclass(frozen=True)
class NormalizationPolicy:
    name: PolicyName
    description: str
    remove_fragments: bool = False
    remove_tracking_params: bool = False
    remove_default_ports: bool = False
    remove_www_subdomain: bool = False
    sort_query_parameters: bool = False
    decode_then_reencode: bool = False
    preserve_hashbang_fragments: bool = False
    remove_user_info: bool = False
    force_https: bool = False
    lowercase_path: bool = False
    # None means every scheme is accepted
    allowed_schemes: Optional[FrozenSet[str]] = None
    tracking_parameters: FrozenSet[str] = field(init=False, default=frozenset())
    preserved_parameters: FrozenSet[str] = field(init=False, default=PRESERVED_PARAMS)

    def __post_init__(self):
        tracking = TRACKING_PARAMS if self.remove_tracking_params else frozenset()
        object.__setattr__(self, "tracking_parameters", tracking)

    def allows_scheme(self, scheme: str) -> bool:
        return self.allowed_schemes is None or scheme.lower() in self.allowed_schemes

    def strips_param(self, key: str) -> bool:
        """True when ``key`` is a tracking parameter this policy drops."""
        k = key.lower()
        return k in self.tracking_parameters and k not in self.preserved_parameters


POLICIES: Dict[PolicyName, NormalizationPolicy] = {
    PolicyName.MINIMAL: NormalizationPolicy(
        name=PolicyName.MINIMAL,
        description="Minimal normalization - lowercase scheme and host, nothing removed",
    ),
    PolicyName.BASIC: NormalizationPolicy(
        name=PolicyName.BASIC,
        description="Basic normalization - default ports and fragments removed, path decoded",
        remove_fragments=True,
        remove_default_ports=True,
        decode_then_reencode=True,
    ),
    PolicyName.AGGRESSIVE: NormalizationPolicy(
        name=PolicyName.AGGRESSIVE,
        description="Aggressive normalization - maximum deduplication",
        remove_fragments=True,
        remove_tracking_params=True,
        remove_default_ports=True,
        remove_www_subdomain=True,
        sort_query_parameters=True,
        decode_then_reencode=True,
        force_https=True,
        lowercase_path=True,
    ),
    PolicyName.SEO_OPTIMIZED: NormalizationPolicy(
        name=PolicyName.SEO_OPTIMIZED,
        description="SEO-optimized - keeps fragments and path case, drops tracking parameters",
        remove_tracking_params=True,
        remove_default_ports=True,
        sort_query_parameters=True,
        decode_then_reencode=True,
        preserve_hashbang_fragments=True,
    ),
    PolicyName.SECURITY_FOCUSED: NormalizationPolicy(
        name=PolicyName.SECURITY_FOCUSED,
        description="Security-focused - rejects userinfo and unexpected schemes",
        remove_fragments=True,
        remove_tracking_params=True,
        remove_default_ports=True,
        remove_user_info=True,
        allowed_schemes=frozenset({"http", "https", "ftp"}),
    ),
    PolicyName.CANONICAL_DEDUP: NormalizationPolicy(
        name=PolicyName.CANONICAL_DEDUP,
        description="Canonical dedup - maximum deduplication for short links, rejects userinfo",
        remove_fragments=True,
        remove_tracking_params=True,
        remove_default_ports=True,
        remove_www_subdomain=True,
        sort_query_parameters=True,
        decode_then_reencode=True,
        remove_user_info=True,
    ),
}


def get_policy(name: Union[str, PolicyName]) -> Union[NormalizationPolicy, UrlError]:
    """Look up a policy by name, case-insensitively."""
    key = name.value if isinstance(name, PolicyName) else str(name).strip().upper()
    try:
        return POLICIES[PolicyName(key)]
    except ValueError:
        return UrlError(ErrorKind.UNKNOWN_POLICY, f"Unknown normalization policy: {name}")


def list_policies() -> List[NormalizationPolicy]:
    return [POLICIES[n] for n in PolicyName]
