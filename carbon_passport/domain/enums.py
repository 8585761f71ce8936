"""Domain enumerations."""

import enum


class TransportMode(str, enum.Enum):
    TRAIN = "train"
    CAR = "car"
    BUS = "bus"
    AIRPLANE = "airplane"


# Mode whose emissions count as "avoided" by taking the train
BASELINE_MODE = TransportMode.CAR


class Locale(str, enum.Enum):
    KO = "ko"
    EN = "en"
    JA = "ja"
    ZH = "zh"


PRIMARY_LOCALE = Locale.KO
FALLBACK_LOCALE = Locale.EN


class CountryCode(str, enum.Enum):
    KR = "KR"
    US = "US"
    JP = "JP"
    CN = "CN"


class TravelFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    RARELY = "rarely"


class TravelPurpose(str, enum.Enum):
    BUSINESS = "business"
    COMMUTE = "commute"
    LEISURE = "leisure"
    FAMILY = "family"


class CreatedVia(str, enum.Enum):
    WEB_FORM = "web_form"
    MOBILE_APP = "mobile_app"
    API = "api"


class ImpactTier(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXCELLENT = "excellent"
