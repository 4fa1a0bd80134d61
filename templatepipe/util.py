from typing import Dict, Iterable

from templatepipe.exceptions import ConfigError

UTF8_BOM = b"\xef\xbb\xbf"


def strip_utf8_bom(data: bytes) -> bytes:
    return data[len(UTF8_BOM):] if data.startswith(UTF8_BOM) else data


def parse_key_value_pairs(pairs: Iterable[str], option_name: str = "value") -> Dict[str, str]:
    """
    Parses ("a=1", "b=x=y") into {"a": "1", "b": "x=y"}.

    Only the first '=' splits; later pairs win over earlier ones with the same key.
    """
    parsed: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"{option_name} must look like KEY=VALUE, got {pair!r}")
        parsed[key] = value
    return parsed
