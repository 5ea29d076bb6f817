"""
Configuration Management

시스템 설정 관리
"""

import os
import re
import yaml
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple
from pathlib import Path
import logging


CONFIG_FILE_NAMES = ('.ai-code-review.yaml', '.ai-code-review.yml')

DEFAULT_EXCLUDE_PATTERNS = [
    'node_modules/',
    '\\.git/',
    '\\.jpg$',
    '\\.png$',
    '\\.pdf$',
    '\\.gif$',
    '\\.webp$',
    '\\.svg$',
    '\\.ico$',
    '\\.woff$',
    '\\.woff2$',
    '\\.ttf$',
    '\\.eot$',
    'package-lock\\.json$',
    'yarn\\.lock$',
    'pnpm-lock\\.yaml$',
    '\\.min\\.(js|css)$',
    'dist/',
    'build/',
    'coverage/',
    '\\.log$',
]

DEFAULT_REVIEW_PROMPT = """You are a senior developer conducting code review.
Analyze the code and find:

- Bugs and logical errors
- Performance issues
- Security vulnerabilities
- Architectural principle violations
- Improvement opportunities
- Code style issues

Be specific and suggest concrete solutions."""


@dataclass
class ModelConfig:
    """모델 서비스 설정"""
    url: str = "http://localhost:11434"
    name: str = "codellama:7b-instruct"
    temperature: float = 0.1
    max_tokens: int = 2048
    timeout_seconds: float = 120.0
    health_timeout_seconds: Optional[float] = None


@dataclass
class FilterConfig:
    """파일 필터 설정"""
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    max_file_size: Optional[int] = 500000  # 500KB


@dataclass
class ReviewConfig:
    """리뷰 프롬프트 설정"""
    prompt: str = DEFAULT_REVIEW_PROMPT


@dataclass
class LoggingConfig:
    """로깅 설정"""
    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass(frozen=True)
class PipelineConfig:
    """Resolved, read-only configuration consumed by the review pipeline."""
    model_url: str
    model_name: str
    temperature: float
    max_tokens: int
    max_file_size: Optional[int]
    timeout_seconds: float
    include_patterns: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()
    review_prompt: str = DEFAULT_REVIEW_PROMPT
    health_timeout_seconds: Optional[float] = None


def _split_patterns(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated environment value into patterns."""
    if value is None:
        return None
    return [p.strip() for p in value.split(',') if p.strip()]


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass
class AppConfig:
    """전체 애플리케이션 설정"""
    model: ModelConfig = field(default_factory=ModelConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "AppConfig":
        """환경 변수에서 설정 로드"""
        defaults = FilterConfig()
        include = _split_patterns(os.getenv("AI_REVIEW_INCLUDE"))
        exclude = _split_patterns(os.getenv("AI_REVIEW_EXCLUDE"))
        max_file_size = os.getenv("AI_REVIEW_MAX_FILE_SIZE")

        return cls(
            model=ModelConfig(
                url=os.getenv("AI_REVIEW_MODEL_URL", "http://localhost:11434"),
                name=os.getenv("AI_REVIEW_MODEL", "codellama:7b-instruct"),
                temperature=float(os.getenv("AI_REVIEW_TEMPERATURE", "0.1")),
                max_tokens=int(os.getenv("AI_REVIEW_MAX_TOKENS", "2048")),
                timeout_seconds=float(os.getenv("AI_REVIEW_TIMEOUT", "120")),
                health_timeout_seconds=_optional_float(os.getenv("AI_REVIEW_HEALTH_TIMEOUT")),
            ),
            filters=FilterConfig(
                include_patterns=include if include is not None else defaults.include_patterns,
                exclude_patterns=exclude if exclude is not None else defaults.exclude_patterns,
                max_file_size=int(max_file_size) if max_file_size else defaults.max_file_size,
            ),
            review=ReviewConfig(
                prompt=os.getenv("AI_REVIEW_PROMPT", DEFAULT_REVIEW_PROMPT),
            ),
            logging=LoggingConfig(
                level=os.getenv("LOG_LEVEL", "WARNING"),
                format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                file_path=os.getenv("LOG_FILE"),
                max_file_size=int(os.getenv("LOG_MAX_SIZE", str(10 * 1024 * 1024))),
                backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
            ),
            debug=os.getenv("DEBUG", "false").lower() == "true",
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "AppConfig":
        """YAML 파일에서 설정 로드"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            try:
                config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")

        try:
            return cls(
                model=ModelConfig(**(config_data.get('model') or {})),
                filters=FilterConfig(**(config_data.get('filters') or {})),
                review=ReviewConfig(**(config_data.get('review') or {})),
                logging=LoggingConfig(**(config_data.get('logging') or {})),
                debug=config_data.get('debug', False),
            )
        except TypeError as e:
            # 알 수 없는 설정 키
            raise ValueError(f"Unknown setting in {config_path}: {e}") from e

    @classmethod
    def discover(cls, start_dir: Optional[str] = None) -> Optional[Path]:
        """현재 디렉토리부터 상위로 설정 파일 검색"""
        current = Path(start_dir or os.getcwd()).resolve()
        for directory in [current, *current.parents]:
            for name in CONFIG_FILE_NAMES:
                candidate = directory / name
                if candidate.is_file():
                    return candidate
        return None

    @classmethod
    def load(cls, config_path: Optional[str] = None, start_dir: Optional[str] = None) -> "AppConfig":
        """Explicit path first, then a discovered file, then the environment."""
        if config_path:
            return cls.from_yaml(config_path)
        discovered = cls.discover(start_dir)
        if discovered is not None:
            return cls.from_yaml(str(discovered))
        return cls.from_env()

    def validate(self) -> None:
        """설정 유효성 검사"""
        errors = []

        if not self.model.url:
            errors.append("Model URL is required")
        elif not self.model.url.startswith(('http://', 'https://')):
            errors.append(f"Model URL must start with http:// or https://: {self.model.url}")

        if not self.model.name:
            errors.append("Model name is required")

        if not 0.0 <= self.model.temperature <= 2.0:
            errors.append("Temperature must be between 0.0 and 2.0")

        if self.model.max_tokens <= 0:
            errors.append("Max tokens must be positive")

        if self.model.timeout_seconds <= 0:
            errors.append("Timeout must be positive")

        if self.model.health_timeout_seconds is not None and self.model.health_timeout_seconds <= 0:
            errors.append("Health check timeout must be positive")

        if self.filters.max_file_size is not None and self.filters.max_file_size < 0:
            errors.append("Max file size must be non-negative")

        # 정규식 검증
        for pattern in [*self.filters.include_patterns, *self.filters.exclude_patterns]:
            try:
                re.compile(pattern)
            except re.error as e:
                errors.append(f"Invalid pattern {pattern!r}: {e}")

        if not self.review.prompt.strip():
            errors.append("Review prompt cannot be empty")

        # 로그 레벨 검증
        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def pipeline(self) -> PipelineConfig:
        """파이프라인용 읽기 전용 설정 생성"""
        return PipelineConfig(
            model_url=self.model.url.rstrip('/'),
            model_name=self.model.name,
            temperature=self.model.temperature,
            max_tokens=self.model.max_tokens,
            max_file_size=self.filters.max_file_size,
            timeout_seconds=self.model.timeout_seconds,
            include_patterns=tuple(self.filters.include_patterns),
            exclude_patterns=tuple(self.filters.exclude_patterns),
            review_prompt=self.review.prompt,
            health_timeout_seconds=self.model.health_timeout_seconds,
        )

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환"""
        return {
            'model': {
                'url': self.model.url,
                'name': self.model.name,
                'temperature': self.model.temperature,
                'max_tokens': self.model.max_tokens,
                'timeout_seconds': self.model.timeout_seconds,
                'health_timeout_seconds': self.model.health_timeout_seconds,
            },
            'filters': {
                'include_patterns': list(self.filters.include_patterns),
                'exclude_patterns': list(self.filters.exclude_patterns),
                'max_file_size': self.filters.max_file_size,
            },
            'review': {
                'prompt': self.review.prompt,
            },
            'logging': {
                'level': self.logging.level,
                'format': self.logging.format,
                'file_path': self.logging.file_path,
                'max_file_size': self.logging.max_file_size,
                'backup_count': self.logging.backup_count,
            },
            'debug': self.debug,
        }

    def to_yaml(self) -> str:
        """설정을 YAML 문자열로 변환"""
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)


class ConfigManager:
    """설정 관리자"""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig.from_env()
        self._config.validate()
        self._setup_logging()

    @property
    def config(self) -> AppConfig:
        """현재 설정 반환"""
        return self._config

    def update_config(self, **kwargs) -> None:
        """설정 업데이트"""
        config_dict = self._config.to_dict()

        for key, value in kwargs.items():
            if '.' in key:
                # 중첩된 설정 (예: 'model.temperature')
                section, name = key.split('.', 1)
                if section in config_dict:
                    config_dict[section][name] = value
            else:
                config_dict[key] = value

        self._config = AppConfig(
            model=ModelConfig(**config_dict['model']),
            filters=FilterConfig(**config_dict['filters']),
            review=ReviewConfig(**config_dict['review']),
            logging=LoggingConfig(**config_dict['logging']),
            debug=config_dict['debug'],
        )

        self._config.validate()
        self._setup_logging()

    def _setup_logging(self) -> None:
        """로깅 설정"""
        level = 'DEBUG' if self._config.debug else self._config.logging.level.upper()
        logging.basicConfig(
            level=getattr(logging, level),
            format=self._config.logging.format,
        )
        logging.getLogger().setLevel(getattr(logging, level))

        # 파일 로깅이 설정된 경우 로테이션 설정
        if self._config.logging.file_path:
            from logging.handlers import RotatingFileHandler

            root_logger = logging.getLogger()
            target = str(Path(self._config.logging.file_path).resolve())
            for existing in root_logger.handlers:
                if isinstance(existing, RotatingFileHandler) and existing.baseFilename == target:
                    return

            handler = RotatingFileHandler(
                self._config.logging.file_path,
                maxBytes=self._config.logging.max_file_size,
                backupCount=self._config.logging.backup_count,
            )
            handler.setFormatter(logging.Formatter(self._config.logging.format))
            root_logger.addHandler(handler)

