
class JobId:
    PREFIX = "job_"


class RequestId:
    PREFIX = "req_"


class BulkBatchId:
    PREFIX = "bulk_"


class TTL:
    CACHE = 60 * 60 * 24 * 30  # 30일 (번역 캐시 만료)
    DAY = 60 * 60 * 24  # 일일 사용량 리셋 주기


class RedisPrefix:
    CACHE = "cache:translation"


class Limits:
    RATE_WINDOW_SECONDS = 60
    FAST_MODEL_MAX_WORDS = 100  # 초과 시 고품질 모델
    MAX_BULK_TEXTS = 50
    RECOMMEND_PAID_USAGE_RATIO = 0.8  # 무료 티어 일일 한도 80% 초과 시 유료 권장
