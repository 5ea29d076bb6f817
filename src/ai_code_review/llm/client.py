"""
Model Service Client

Handles communication with the locally hosted model service (Ollama HTTP API):
the pre-flight health probe and the per-file analysis request.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import PipelineConfig
from ..exceptions import AnalysisTimeout, ModelNotInstalled, ModelServiceError, ServiceUnavailable
from ..models.change import ChangeRecord
from ..models.service import ParseOutcome, ServiceHealth
from .prompts import PromptBuilder
from .recovery import ResponseParser


logger = logging.getLogger(__name__)

DEFAULT_HEALTH_TIMEOUT = 5.0
MAX_PREDICT_TOKENS = 2048
STOP_SEQUENCES = ['\n\n---', '```\n\n']


class ModelClient:
    """
    Model service client with bounded-time requests.

    Provides methods for:
    - Health probe against the model listing endpoint
    - Single-file analysis via the generate endpoint
    """

    def __init__(
        self,
        config: PipelineConfig,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize model client.

        Args:
            config: Resolved pipeline configuration
            prompt_builder: Prompt builder (default: built from config.review_prompt)
            parser: Reply parser (default: ResponseParser)
            session: HTTP session to use (default: a new session without retries)
        """
        self.config = config
        self.base_url = config.model_url.rstrip('/')
        self.prompt_builder = prompt_builder or PromptBuilder(config.review_prompt)
        self.parser = parser or ResponseParser()
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create requests session; one request per call, never retried."""
        session = requests.Session()

        adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            'Content-Type': 'application/json',
            'User-Agent': 'AI-Code-Review/1.0',
        })

        return session

    @property
    def health_timeout(self) -> float:
        return self.config.health_timeout_seconds or DEFAULT_HEALTH_TIMEOUT

    def _request(self, method: str, endpoint: str, timeout: float, **kwargs) -> Dict[str, Any]:
        """
        Make request to the model service.

        Args:
            method: HTTP method (GET, POST)
            endpoint: API endpoint (without base URL)
            timeout: Connect and per-read socket timeout in seconds (requests
                semantics), not a cap on total elapsed time
            **kwargs: Additional arguments for requests

        Returns:
            Decoded JSON body

        Raises:
            AnalysisTimeout: When a socket read times out
            ServiceUnavailable: When the service cannot be reached
            ModelServiceError: For HTTP errors and undecodable bodies
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            response = self.session.request(method, url, timeout=timeout, **kwargs)
        except requests.ConnectTimeout as e:
            raise ServiceUnavailable(f"Model service unavailable: {e}", model_url=self.base_url) from e
        except requests.Timeout as e:
            raise AnalysisTimeout(timeout) from e
        except requests.ConnectionError as e:
            raise ServiceUnavailable(f"Model service unavailable: {e}", model_url=self.base_url) from e
        except requests.RequestException as e:
            raise ModelServiceError(f"Request failed: {e}") from e

        if not response.ok:
            detail = response.text.strip()[:200] if response.content else ''
            raise ModelServiceError(
                f"Model service error: {response.status_code}{' - ' + detail if detail else ''}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ModelServiceError(f"Model service returned invalid JSON: {e}") from e

    def list_models(self) -> List[str]:
        """Names of the models installed on the service."""
        data = self._request('GET', '/api/tags', timeout=self.health_timeout)
        models = data.get('models') if isinstance(data, dict) else None
        models = models if isinstance(models, list) else []
        return [m['name'] for m in models if isinstance(m, dict) and isinstance(m.get('name'), str)]

    def has_model(self, available: List[str]) -> bool:
        """Match on the base name before the tag separator."""
        base_name = self.config.model_name.split(':')[0]
        return any(name.startswith(base_name) for name in available)

    def probe_health(self) -> ServiceHealth:
        """
        Check that the service is reachable and the model is installed.

        Returns:
            ServiceHealth; connection failures are captured, never raised
        """
        try:
            available = self.list_models()
        except ModelServiceError as e:
            logger.warning(f"Health check failed: {e}")
            message = str(e)
            if not isinstance(e, ServiceUnavailable):
                message = f"Model service unavailable: {message}"
            return ServiceHealth(healthy=False, error=message)

        if not self.has_model(available):
            error = ModelNotInstalled(self.config.model_name, available)
            logger.warning(str(error))
            return ServiceHealth(healthy=False, error=str(error), available_models=available)

        logger.info(f"Model service healthy, {self.config.model_name} available")
        return ServiceHealth(healthy=True, available_models=available)

    def ensure_available(self) -> None:
        """
        Pre-flight check raising on fatal conditions.

        Raises:
            ServiceUnavailable: Service cannot be reached
            ModelNotInstalled: Configured model is absent
        """
        try:
            available = self.list_models()
        except ServiceUnavailable:
            raise
        except ModelServiceError as e:
            raise ServiceUnavailable(f"Model service unavailable: {e}", model_url=self.base_url) from e

        if not self.has_model(available):
            raise ModelNotInstalled(self.config.model_name, available)

    def generate(self, prompt: str) -> str:
        """
        Issue a single non-streaming generation request.

        timeout_seconds bounds the connection and each socket read, not the
        whole call. With streaming off the service sends nothing until the
        reply is complete, so a slow generation trips the read timeout; a
        server that trickles bytes could still run past it.

        Args:
            prompt: Complete prompt

        Returns:
            Raw reply text
        """
        payload = {
            'model': self.config.model_name,
            'prompt': prompt,
            'stream': False,
            'options': {
                'temperature': self.config.temperature,
                'num_predict': min(self.config.max_tokens, MAX_PREDICT_TOKENS),
                'stop': STOP_SEQUENCES,
            },
        }

        data = self._request('POST', '/api/generate', timeout=self.config.timeout_seconds, json=payload)
        response = data.get('response') if isinstance(data, dict) else None
        if not isinstance(response, str):
            raise ModelServiceError("Model service reply has no 'response' text")
        return response

    def analyze(self, record: ChangeRecord) -> ParseOutcome:
        """
        Analyze one eligible file.

        Args:
            record: ChangeRecord to review

        Returns:
            Parse outcome of the model reply

        Raises:
            AnalysisTimeout, ServiceUnavailable, ModelServiceError
        """
        logger.info(f"Analyzing {record.path} with {self.config.model_name}")

        prompt = self.prompt_builder.build_review_prompt(record)
        reply = self.generate(prompt)

        logger.debug(f"Received {len(reply)} characters for {record.path}")
        return self.parser.parse(reply, record.path)

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
