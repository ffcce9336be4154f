# storefront/utils/retry.py
import logging

import redis
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront.utils.logging import get_logger
from storefront.utils.settings import REDIS_RETRY_ATTEMPTS

logger = get_logger(__name__)


def redis_retry(attempts: int | None = None):
    #tylko zerwane polaczenie / timeout, odpowiedz redisa nie jest ponawiana
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts or REDIS_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type((redis.ConnectionError, redis.TimeoutError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
