"""Field schema for the enriched event TSV format.

A record is decoded positionally: the n-th descriptor names the n-th
tab-separated token. Descriptors are either Plain(name), kept as a string,
or Transformed(name, fn), where fn converts the non-empty token.
"""

from dataclasses import dataclass
from typing import Any, Callable, Union


@dataclass(frozen=True)
class Plain:
    name: str

    def decode(self, token):
        return token


@dataclass(frozen=True)
class Transformed:
    name: str
    transform: Callable[[str], Any]

    def decode(self, token):
        return self.transform(token)


FieldDescriptor = Union[Plain, Transformed]


class FieldSchema:
    """Ordered, immutable sequence of field descriptors."""

    def __init__(self, descriptors):
        self._descriptors = tuple(
            d if isinstance(d, (Plain, Transformed)) else Plain(d) for d in descriptors
        )

    def __iter__(self):
        return iter(self._descriptors)

    def __len__(self):
        return len(self._descriptors)

    @property
    def names(self):
        return [d.name for d in self._descriptors]


# ──────────────────────────────────────────────
# Transforms
# ──────────────────────────────────────────────
def to_int(value):
    return int(value)


def to_float(value):
    return float(value)


def to_bool(value):
    lowered = value.lower()
    if lowered in ("1", "true"):
        return True
    if lowered in ("0", "false"):
        return False
    raise ValueError(f"Not a boolean: {value!r}")


def to_timestamp(value):
    """Rewrite 'YYYY-MM-DD HH:MM:SS.fff' as ISO 'YYYY-MM-DDTHH:MM:SS.fffZ'."""
    date_part, sep, time_part = value.partition(" ")
    if not sep:
        return value
    return f"{date_part}T{time_part}Z"


# ──────────────────────────────────────────────
# Enriched event layout (131 columns)
# ──────────────────────────────────────────────
ENRICHED_EVENT_FIELDS = FieldSchema([
    "app_id",
    "platform",
    Transformed("etl_tstamp", to_timestamp),
    Transformed("collector_tstamp", to_timestamp),
    Transformed("dvce_created_tstamp", to_timestamp),
    "event",
    "event_id",
    "txn_id",
    "name_tracker",
    "v_tracker",
    "v_collector",
    "v_etl",
    "user_id",
    "user_ipaddress",
    "user_fingerprint",
    "domain_userid",
    Transformed("domain_sessionidx", to_int),
    "network_userid",
    "geo_country",
    "geo_region",
    "geo_city",
    "geo_zipcode",
    Transformed("geo_latitude", to_float),
    Transformed("geo_longitude", to_float),
    "geo_region_name",
    "ip_isp",
    "ip_organization",
    "ip_domain",
    "ip_netspeed",
    "page_url",
    "page_title",
    "page_referrer",
    "page_urlscheme",
    "page_urlhost",
    Transformed("page_urlport", to_int),
    "page_urlpath",
    "page_urlquery",
    "page_urlfragment",
    "refr_urlscheme",
    "refr_urlhost",
    Transformed("refr_urlport", to_int),
    "refr_urlpath",
    "refr_urlquery",
    "refr_urlfragment",
    "refr_medium",
    "refr_source",
    "refr_term",
    "mkt_medium",
    "mkt_source",
    "mkt_term",
    "mkt_content",
    "mkt_campaign",
    "contexts",
    "se_category",
    "se_action",
    "se_label",
    "se_property",
    Transformed("se_value", to_float),
    "unstruct_event",
    "tr_orderid",
    "tr_affiliation",
    Transformed("tr_total", to_float),
    Transformed("tr_tax", to_float),
    Transformed("tr_shipping", to_float),
    "tr_city",
    "tr_state",
    "tr_country",
    "ti_orderid",
    "ti_sku",
    "ti_name",
    "ti_category",
    Transformed("ti_price", to_float),
    Transformed("ti_quantity", to_int),
    Transformed("pp_xoffset_min", to_int),
    Transformed("pp_xoffset_max", to_int),
    Transformed("pp_yoffset_min", to_int),
    Transformed("pp_yoffset_max", to_int),
    "useragent",
    "br_name",
    "br_family",
    "br_version",
    "br_type",
    "br_renderengine",
    "br_lang",
    Transformed("br_features_pdf", to_bool),
    Transformed("br_features_flash", to_bool),
    Transformed("br_features_java", to_bool),
    Transformed("br_features_director", to_bool),
    Transformed("br_features_quicktime", to_bool),
    Transformed("br_features_realplayer", to_bool),
    Transformed("br_features_windowsmedia", to_bool),
    Transformed("br_features_gears", to_bool),
    Transformed("br_features_silverlight", to_bool),
    Transformed("br_cookies", to_bool),
    "br_colordepth",
    Transformed("br_viewwidth", to_int),
    Transformed("br_viewheight", to_int),
    "os_name",
    "os_family",
    "os_manufacturer",
    "os_timezone",
    "dvce_type",
    Transformed("dvce_ismobile", to_bool),
    Transformed("dvce_screenwidth", to_int),
    Transformed("dvce_screenheight", to_int),
    "doc_charset",
    Transformed("doc_width", to_int),
    Transformed("doc_height", to_int),
    "tr_currency",
    Transformed("tr_total_base", to_float),
    Transformed("tr_tax_base", to_float),
    Transformed("tr_shipping_base", to_float),
    "ti_currency",
    Transformed("ti_price_base", to_float),
    "base_currency",
    "geo_timezone",
    "mkt_clickid",
    "mkt_network",
    "etl_tags",
    Transformed("dvce_sent_tstamp", to_timestamp),
    "refr_domain_userid",
    Transformed("refr_dvce_tstamp", to_timestamp),
    "derived_contexts",
    "domain_sessionid",
    Transformed("derived_tstamp", to_timestamp),
    "event_vendor",
    "event_name",
    "event_format",
    "event_version",
    "event_fingerprint",
    Transformed("true_tstamp", to_timestamp),
])
