"""직렬화 엔진 로깅

QueueHandler/QueueListener 기반 논블로킹 로깅입니다. 직렬화를 호출하는 스레드(가상 유저)는
레코드를 큐에 넣기만 하고, 콘솔/파일 출력은 리스너 스레드가 담당합니다.

- 출력 대상(콘솔 여부, 파일 경로)이 같은 로거들은 큐와 리스너 스레드 하나를 공유합니다
- `set_context`로 넣은 필드(topic, subject 등)는 contextvars 기반이라 스레드별로 분리됩니다
- `serde_error`는 SerdeError의 코드를 `error_code` 필드로 남깁니다
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from schema_serde.common.exceptions import SerdeError
from schema_serde.config.settings import serde_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(component)s] %(message)s"

# 값은 교체만 하고 제자리 수정하지 않음 (default dict 공유 방지)
_log_context: ContextVar[dict[str, Any]] = ContextVar("serde_log_context", default={})

SinkKey = tuple[bool, str | None]


@dataclass(slots=True)
class _LogSink:
    """출력 대상 하나에 대응하는 큐 + 리스너"""

    log_queue: queue.Queue
    listener: QueueListener
    handlers: list[logging.Handler]
    users: int = 0


_sinks: dict[SinkKey, _LogSink] = {}
_sinks_lock = threading.Lock()


def _build_handlers(log_to_console: bool, log_file: str | None, rotation: str) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []

    if log_to_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(formatter)
        handlers.append(console)

    if log_file:
        # 디렉터리만 생성하고 파일 생성은 핸들러에 위임
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=log_file,
            when=rotation,
            backupCount=7,  # 7일치 로그 유지
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    return handlers


def _acquire_sink(key: SinkKey, rotation: str) -> _LogSink:
    with _sinks_lock:
        sink = _sinks.get(key)
        if sink is None:
            log_to_console, log_file = key
            handlers = _build_handlers(log_to_console, log_file, rotation)
            # 무제한 버퍼로 설정해 queue.Full 예외 방지
            log_queue: queue.Queue = queue.Queue()
            listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
            listener.start()
            sink = _sinks[key] = _LogSink(log_queue, listener, handlers)
        sink.users += 1
        return sink


def _release_sink(key: SinkKey) -> None:
    with _sinks_lock:
        sink = _sinks.get(key)
        if sink is None:
            return
        sink.users -= 1
        if sink.users > 0:
            return
        del _sinks[key]
    # 남은 레코드를 모두 내보낸 뒤 핸들러를 닫음
    sink.listener.stop()
    for handler in sink.handlers:
        handler.close()


class PipelineLogger:
    """
    컴포넌트 단위 로거 (registry, serde 등)

    Example:
        >>> logger = PipelineLogger.get_logger("schema_registry", "registry")
        >>> logger.set_context(topic="ticker")
        >>> logger.info("스키마 등록 완료", extra={"schema_id": 7})
    """

    @classmethod
    def get_logger(cls, name: str, component: str | None = None, **kwargs) -> PipelineLogger:
        """모듈 전역에서 한 번 생성해 쓰는 팩토리 메서드."""
        return cls(name, component, **kwargs)

    def __init__(
        self,
        name: str,
        component: str | None = None,
        level: int | str | None = None,
        log_to_file: bool | None = None,
        log_to_console: bool = True,
        log_dir: str | None = None,
        rotation: str = "midnight",
    ):
        """
        Args:
            name: 로거 이름
            component: 컴포넌트 이름 (파일 로그 하위 디렉터리로도 사용)
            level: 로깅 레벨 (기본: SERDE_LOG_LEVEL)
            log_to_file: 파일 로깅 여부 (기본: SERDE_LOG_TO_FILE)
            log_to_console: 콘솔 로깅 여부
            log_dir: 로그 디렉터리 (기본: SERDE_LOG_DIR)
            rotation: 파일 로테이션 주기
        """
        self.name = name
        self.component = component
        self.level = level or serde_settings.log_level.upper()
        self.log_to_file = serde_settings.log_to_file if log_to_file is None else log_to_file
        self.log_dir = log_dir or serde_settings.log_dir

        self.logger_name = f"{name}.{component}" if component else name
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(self.level)
        if self.logger.hasHandlers():
            self.logger.handlers.clear()

        self._sink_key: SinkKey = (
            log_to_console,
            self._get_log_filename() if self.log_to_file else None,
        )
        self._sink = _acquire_sink(self._sink_key, rotation)
        self._closed = False
        self.queue_handler = QueueHandler(self._sink.log_queue)
        self.logger.addHandler(self.queue_handler)

    def _get_log_filename(self) -> str:
        today = datetime.now().strftime("%Y-%m-%d")
        component_part = f"{self.component}/" if self.component else ""
        return f"{self.log_dir}/{component_part}{self.name}_{today}.log"

    # ------------------------------------------------------------------
    # 컨텍스트 (현재 스레드/태스크 한정)
    # ------------------------------------------------------------------
    @property
    def context(self) -> dict[str, Any]:
        return dict(_log_context.get())

    def set_context(self, **kwargs) -> None:
        _log_context.set({**_log_context.get(), **kwargs})

    def clear_context(self) -> None:
        _log_context.set({})

    # ------------------------------------------------------------------
    # 기록
    # ------------------------------------------------------------------
    def _process_message(self, level: int, msg: str, extra: dict[str, Any]) -> None:
        exc_info = extra.pop("exc_info", None)
        stack_info = bool(extra.pop("stack_info", False))

        log_extra: dict[str, Any] = {"component": self.component or "main"}
        log_extra.update(_log_context.get())
        # logger.info(..., extra={...}) 형태와 키워드 인자 형태를 모두 지원
        nested = extra.pop("extra", None)
        if isinstance(nested, dict):
            log_extra.update(nested)
        log_extra.update(extra)

        self.logger.log(level, msg, exc_info=exc_info, stack_info=stack_info, extra=log_extra)

    def debug(self, msg: str, **kwargs) -> None:
        self._process_message(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs) -> None:
        self._process_message(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs) -> None:
        self._process_message(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs) -> None:
        self._process_message(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs) -> None:
        self._process_message(logging.CRITICAL, msg, kwargs)

    def serde_error(
        self, msg: str, err: SerdeError, level: int = logging.ERROR, **kwargs
    ) -> None:
        """SerdeError를 코드/원인과 함께 기록합니다."""
        kwargs.setdefault("error_code", str(err.code))
        if err.cause is not None:
            kwargs.setdefault("cause", repr(err.cause))
        self._process_message(level, f"{msg}: {err}", kwargs)

    def close(self) -> None:
        """공유 리스너 참조를 반환합니다. 마지막 사용자가 닫으면 리스너가 종료됩니다."""
        if self._closed:
            return
        self._closed = True
        self.logger.removeHandler(self.queue_handler)
        _release_sink(self._sink_key)

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass
