"""
Station Directory
=================

Read-only reference table of KORAIL stations: localized display names,
coordinates, region and KTX hub flag.  The table is built once at import
time (``DEFAULT_DIRECTORY``) and shared by every request; nothing mutates
it afterwards, so concurrent readers need no locking.

Lookup rules
------------
* ``get_by_code`` / ``get_by_name`` / ``resolve`` are *exact* lookups.  Route
  resolution must never guess: an ambiguous name fails instead of picking
  the first candidate.
* ``search`` is the substring variant, meant for autocomplete only.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .distance import distance_km
from .entities import Coordinate, Station
from .enums import FALLBACK_LOCALE, Locale
from .errors import StationNotFound

# Suffix each locale appends to a station name ("서울역", "Seoul Station" ...)
_STATION_SUFFIXES = {
    Locale.KO.value: "역",
    Locale.EN.value: " Station",
    Locale.JA.value: "駅",
    Locale.ZH.value: "站",
}


def _normalise(text: str) -> str:
    return " ".join(text.split()).casefold()


def _short_name(name: str, locale: str) -> str:
    suffix = _STATION_SUFFIXES.get(locale, "")
    if suffix and name.endswith(suffix) and len(name) > len(suffix):
        return name[: -len(suffix)]
    return name


class StationDirectory:
    """Immutable index over a list of stations, in declaration order."""

    def __init__(self, stations: Iterable[Station]):
        self._stations: tuple[Station, ...] = tuple(stations)
        self._by_code: dict[str, Station] = {}
        for station in self._stations:
            key = station.code.upper()
            if key in self._by_code:
                raise ValueError(f"Duplicate station code: {station.code}")
            self._by_code[key] = station

    def __len__(self) -> int:
        return len(self._stations)

    def __iter__(self):
        return iter(self._stations)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.strip().upper() in self._by_code

    # ── Exact lookups ─────────────────────────────────────────────

    def get_by_code(self, code: str) -> Station:
        station = self._by_code.get(code.strip().upper())
        if station is None:
            raise StationNotFound(code)
        return station

    def find_by_code(self, code: str) -> Optional[Station]:
        return self._by_code.get(code.strip().upper())

    def get_by_name(self, name: str, locale: str) -> Station:
        """
        Exact, case-insensitive match on the display name in *locale*.

        The short form without the station suffix ("서울" for "서울역",
        "Seoul" for "Seoul Station") is accepted as well.  More than one
        match raises ``StationNotFound``.
        """
        matches = self._match_name(name, (locale,))
        if not matches:
            raise StationNotFound(name)
        if len(matches) > 1:
            raise StationNotFound(name, reason="ambiguous station name")
        return matches[0]

    def resolve(self, identifier: str) -> Station:
        """
        Resolve a leg endpoint: station code first, then an exact name in
        any supported locale.  Never falls back to substring matching.
        """
        if not identifier or not identifier.strip():
            raise StationNotFound(identifier or "", reason="missing station")
        station = self.find_by_code(identifier)
        if station is not None:
            return station

        matches = self._match_name(identifier, [loc.value for loc in Locale])
        if not matches:
            raise StationNotFound(identifier)
        if len(matches) > 1:
            raise StationNotFound(identifier, reason="ambiguous station name")
        return matches[0]

    def _match_name(self, name: str, locales: Iterable[str]) -> list[Station]:
        wanted = _normalise(name)
        locales = list(locales)
        matches: list[Station] = []
        for station in self._stations:
            for locale in locales:
                display = station.names.get(locale)
                if not display:
                    continue
                if wanted in (
                    _normalise(display),
                    _normalise(_short_name(display, locale)),
                ):
                    matches.append(station)
                    break
        return matches

    # ── Collections ───────────────────────────────────────────────

    def search(self, query: str, locale: str = FALLBACK_LOCALE.value) -> list[Station]:
        """Case-insensitive substring search on the *locale* display name."""
        wanted = _normalise(query)
        if not wanted:
            return []
        return [
            s
            for s in self._stations
            if s.names.get(locale) and wanted in _normalise(s.names[locale])
        ]

    def list_by_region(self, region: str) -> list[Station]:
        return [s for s in self._stations if s.region == region]

    def primary_hubs(self) -> list[Station]:
        return [s for s in self._stations if s.is_primary_hub]

    def active(self) -> list[Station]:
        return [s for s in self._stations if s.is_active]

    def regions(self) -> list[str]:
        seen: list[str] = []
        for station in self._stations:
            if station.region and station.region not in seen:
                seen.append(station.region)
        return seen

    def nearby(
        self, center: Coordinate, radius_km: float
    ) -> list[tuple[Station, float]]:
        """Stations within *radius_km* of *center*, closest first."""
        if radius_km <= 0:
            raise ValueError("Radius must be positive")
        center.validate()
        hits = [(s, distance_km(center, s.coordinate)) for s in self._stations]
        return sorted(
            ((s, d) for s, d in hits if d <= radius_km), key=lambda item: item[1]
        )


REGION_NAMES: dict[str, dict[str, str]] = {
    "seoul": {"ko": "서울", "en": "Seoul", "ja": "ソウル", "zh": "首尔"},
    "gyeonggi": {"ko": "경기도", "en": "Gyeonggi", "ja": "京畿道", "zh": "京畿道"},
    "incheon": {"ko": "인천", "en": "Incheon", "ja": "仁川", "zh": "仁川"},
    "gangwon": {"ko": "강원도", "en": "Gangwon", "ja": "江原道", "zh": "江原道"},
    "chungcheong": {"ko": "충청도", "en": "Chungcheong", "ja": "忠清道", "zh": "忠清道"},
    "jeolla": {"ko": "전라도", "en": "Jeolla", "ja": "全羅道", "zh": "全罗道"},
    "gyeongsang": {"ko": "경상도", "en": "Gyeongsang", "ja": "慶尚道", "zh": "庆尚道"},
    "jeju": {"ko": "제주도", "en": "Jeju", "ja": "済州島", "zh": "济州岛"},
}


def region_name(region: str, locale: str) -> str:
    names = REGION_NAMES.get(region)
    if not names:
        return region
    return names.get(locale) or names[FALLBACK_LOCALE.value]


# ── Static dataset ────────────────────────────────────────────────────

# code, ko, en, ja, zh, lat, lng, region, KTX hub
_STATION_ROWS = [
    ("SEOUL", "서울역", "Seoul Station", "ソウル駅", "首尔站", 37.5547, 126.9707, "seoul", True),
    ("YONGSAN", "용산역", "Yongsan Station", "龍山駅", "龙山站", 37.5298, 126.9648, "seoul", True),
    ("GANGNAM", "강남역", "Gangnam Station", "カンナム駅", "江南站", 37.4971, 127.0276, "seoul", False),
    ("YEONGDEUNGPO", "영등포역", "Yeongdeungpo Station", "永登浦駅", "永登浦站", 37.5156, 126.9074, "seoul", False),
    ("SUWON", "수원역", "Suwon Station", "水原駅", "水原站", 37.2659, 126.9999, "gyeonggi", True),
    ("PYEONGTAEK", "평택역", "Pyeongtaek Station", "平沢駅", "平泽站", 36.9906, 127.0855, "gyeonggi", False),
    ("CHEONAN", "천안역", "Cheonan Station", "天安駅", "天安站", 36.7938, 127.1458, "gyeonggi", False),
    ("UIJEONGBU", "의정부역", "Uijeongbu Station", "議政府駅", "议政府站", 37.7382, 127.0450, "gyeonggi", False),
    ("GWANGMYEONG", "광명역", "Gwangmyeong Station", "光明駅", "光明站", 37.4160, 126.8848, "gyeonggi", True),
    ("INCHEON", "인천역", "Incheon Station", "仁川駅", "仁川站", 37.4767, 126.6167, "incheon", False),
    ("INCHEON_AIRPORT", "인천공항역", "Incheon Airport Station", "仁川空港駅", "仁川机场站", 37.4477, 126.4523, "incheon", False),
    ("CHUNCHEON", "춘천역", "Chuncheon Station", "春川駅", "春川站", 37.8850, 127.7166, "gangwon", False),
    ("GANGNEUNG", "강릉역", "Gangneung Station", "江陵駅", "江陵站", 37.7641, 128.8990, "gangwon", True),
    ("WONJU", "원주역", "Wonju Station", "原州駅", "原州站", 37.3387, 127.9504, "gangwon", False),
    ("PYEONGCHANG", "평창역", "Pyeongchang Station", "平昌駅", "平昌站", 37.5705, 128.3920, "gangwon", True),
    ("DAEJEON", "대전역", "Daejeon Station", "大田駅", "大田站", 36.3333, 127.4333, "chungcheong", True),
    ("CHEONGJU", "청주역", "Cheongju Station", "清州駅", "清州站", 36.6277, 127.4313, "chungcheong", False),
    ("CHUNGJU", "충주역", "Chungju Station", "忠州駅", "忠州站", 36.9720, 127.9261, "chungcheong", False),
    ("ASAN", "아산역", "Asan Station", "牙山駅", "牙山站", 36.7920, 127.0044, "chungcheong", False),
    ("OSONG", "오송역", "Osong Station", "オソン駅", "五松站", 36.6200, 127.3267, "chungcheong", True),
    ("GONGJU", "공주역", "Gongju Station", "公州駅", "公州站", 36.4467, 127.0983, "chungcheong", True),
    ("JEONJU", "전주역", "Jeonju Station", "全州駅", "全州站", 35.8472, 127.1617, "jeolla", False),
    ("GWANGJU", "광주역", "Gwangju Station", "光州駅", "光州站", 35.1657, 126.9090, "jeolla", True),
    ("MOKPO", "목포역", "Mokpo Station", "木浦駅", "木浦站", 34.7936, 126.3886, "jeolla", True),
    ("YEOSU_EXPO", "여수엑스포역", "Yeosu Expo Station", "麗水エキスポ駅", "丽水世博站", 34.7525, 127.7460, "jeolla", True),
    ("SUNCHEON", "순천역", "Suncheon Station", "順天駅", "顺天站", 34.9454, 127.5035, "jeolla", False),
    ("IKSAN", "익산역", "Iksan Station", "益山駅", "益山站", 35.9383, 126.9917, "jeolla", True),
    ("BUSAN", "부산역", "Busan Station", "釜山駅", "釜山站", 35.1154, 129.0413, "gyeongsang", True),
    ("DAEGU", "대구역", "Daegu Station", "大邱駅", "大邱站", 35.8781, 128.6281, "gyeongsang", False),
    ("DONGDAEGU", "동대구역", "Dongdaegu Station", "東大邱駅", "东大邱站", 35.8797, 128.6286, "gyeongsang", True),
    ("ULSAN", "울산역", "Ulsan Station", "蔚山駅", "蔚山站", 35.5516, 129.1387, "gyeongsang", True),
    ("POHANG", "포항역", "Pohang Station", "浦項駅", "浦项站", 36.0719, 129.3433, "gyeongsang", True),
    ("GYEONGJU", "경주역", "Gyeongju Station", "慶州駅", "庆州站", 35.7984, 129.1404, "gyeongsang", False),
    ("SINGYEONGJU", "신경주역", "Singyeongju Station", "新慶州駅", "新庆州站", 35.7978, 129.1392, "gyeongsang", True),
    ("JINJU", "진주역", "Jinju Station", "晋州駅", "晋州站", 35.1498, 128.0334, "gyeongsang", False),
    ("CHANGWON", "창원역", "Changwon Station", "昌原駅", "昌原站", 35.2242, 128.6719, "gyeongsang", False),
    ("MASAN", "마산역", "Masan Station", "馬山駅", "马山站", 35.2350, 128.5725, "gyeongsang", False),
    ("GIMCHEON_GUMI", "김천구미역", "Gimcheon-Gumi Station", "金泉亀尾駅", "金泉龟尾站", 36.1094, 128.3317, "gyeongsang", True),
    ("JEJU", "제주", "Jeju", "済州", "济州", 33.5000, 126.5311, "jeju", False),
]


def _build_default_directory() -> StationDirectory:
    return StationDirectory(
        Station(
            code=code,
            names={"ko": ko, "en": en, "ja": ja, "zh": zh},
            coordinate=Coordinate(lat, lng).validate(),
            region=region,
            is_primary_hub=hub,
        )
        for code, ko, en, ja, zh, lat, lng, region, hub in _STATION_ROWS
    )


DEFAULT_DIRECTORY = _build_default_directory()
