"""Face++ beauty scoring client with bounded linear-backoff retries."""
import base64
import binascii
import logging
import re
import time

import requests

from faceoff.errors import InvalidRequest, NoFaceDetected, UpstreamError, UpstreamFailure

logger = logging.getLogger(__name__)

CONCURRENCY_LIMIT_ERROR = 'CONCURRENCY_LIMIT_EXCEEDED'
_DATA_URL_PREFIX = re.compile(r'^data:image/\w+;base64,')
# Lets Face++ accept images up to 1080x1080.
_MAX_IMAGE_PIXELS = '1166400'


def decode_photo(photo_b64):
    """Decode a stored base64 photo, tolerating a ``data:image/...`` prefix."""
    raw = _DATA_URL_PREFIX.sub('', str(photo_b64 or '').strip())
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidRequest('Stored photo is not valid base64') from exc


def _extract_beauty(payload):
    faces = payload.get('faces') if isinstance(payload, dict) else None
    if not faces or not isinstance(faces, list):
        return None
    attributes = faces[0].get('attributes') if isinstance(faces[0], dict) else None
    if not isinstance(attributes, dict):
        return None
    beauty = attributes.get('beauty')
    return beauty if isinstance(beauty, dict) else None


class FaceScoringClient:
    """Score a single face photo via the Face++ ``detect`` endpoint.

    A photo's score is the mean of the male and female beauty sub-scores
    Face++ reports for the first detected face. Every failure (the named
    concurrency-limit error and anything else) is retried up to
    ``max_retries`` times, waiting ``retry_delay * attempt`` seconds before
    each retry. Once retries run out the last error propagates.
    """

    def __init__(
        self,
        api_url,
        api_key,
        api_secret,
        max_retries=3,
        retry_delay=1.0,
        timeout=15.0,
        sleep=time.sleep,
    ):
        self.api_url = str(api_url or '').rstrip('/')
        self.api_key = api_key
        self.api_secret = api_secret
        self.max_retries = max(0, int(max_retries))
        self.retry_delay = max(0.0, float(retry_delay))
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_config(cls, config):
        return cls(
            api_url=config.get('FACEPP_API_URL'),
            api_key=config.get('FACEPP_API_KEY'),
            api_secret=config.get('FACEPP_API_SECRET'),
            max_retries=config.get('FACE_SCORING_MAX_RETRIES', 3),
            retry_delay=config.get('FACE_SCORING_RETRY_DELAY_SECONDS', 1.0),
            timeout=config.get('FACE_SCORING_TIMEOUT_SECONDS', 15.0),
        )

    def score_photo(self, photo_b64):
        return self.score_image(decode_photo(photo_b64))

    def score_image(self, image_bytes):
        attempt = 0
        while True:
            try:
                return self._detect_beauty(image_bytes)
            except UpstreamFailure as exc:
                if attempt >= self.max_retries:
                    logger.error(
                        'Face scoring failed after %d attempts: %s', attempt + 1, exc.message,
                    )
                    raise
                attempt += 1
                delay = self.retry_delay * attempt
                if getattr(exc, 'concurrency_limited', False):
                    logger.info('Face++ concurrency limit hit, retry %d in %.2fs', attempt, delay)
                else:
                    logger.warning(
                        'Face scoring attempt failed (%s), retry %d in %.2fs',
                        exc.message, attempt, delay,
                    )
                self._sleep(delay)

    def _detect_beauty(self, image_bytes):
        try:
            response = requests.post(
                f'{self.api_url}/detect',
                data={
                    'api_key': self.api_key,
                    'api_secret': self.api_secret,
                    'return_attributes': 'beauty',
                },
                files={'image_file': ('photo', image_bytes)},
                headers={
                    'Accept': 'application/json',
                    'Max-Image-Pixels': _MAX_IMAGE_PIXELS,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError(f'Face++ API request failed: {exc}') from exc

        if not 200 <= response.status_code < 300:
            body = response.text or ''
            raise UpstreamError(
                f'Face++ API error: {body}',
                concurrency_limited=CONCURRENCY_LIMIT_ERROR in body,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError('Invalid Face++ API response') from exc

        beauty = _extract_beauty(payload)
        if beauty is None:
            raise NoFaceDetected()
        try:
            male_score = float(beauty['male_score'])
            female_score = float(beauty['female_score'])
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamError('Face++ API response is missing beauty scores') from exc
        return (male_score + female_score) / 2
