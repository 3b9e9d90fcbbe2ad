"""
Format Registry

Central registry of format extractors with classification and dispatch.

Two explicit sets drive the engine:
- dispatch set: every id accepted when the caller forces a format
- ranking set: the extractors scored in automatic mode, in tie-break order

By default the employer-specific liquidacion_tipo3 layout is only in the
dispatch set: its anchors also match other employers' payslips.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from ..config import EngineConfig
from ..exceptions import ConfigError, UnknownFormatError
from .credit_notes import NotaCreditoExtractor
from .document_type import FormatExtractor, ParseResult
from .invoices import (
    FacturaAfectaExtractor,
    FacturaElectronicaModernaExtractor,
    FacturaRetailExtractor,
    FacturaSiiExtractor,
    FacturaSimpleExtractor,
)
from .payroll import LiquidacionExtractor, LiquidacionTipo2Extractor, LiquidacionTipo3Extractor
from .receipts import SiiClasicoExtractor, SiiVarBExtractor


# Registration order is the automatic-mode tie-break order
BUILTIN_EXTRACTORS = (
    SiiClasicoExtractor,
    SiiVarBExtractor,
    FacturaSiiExtractor,
    FacturaSimpleExtractor,
    FacturaAfectaExtractor,
    FacturaRetailExtractor,
    FacturaElectronicaModernaExtractor,
    NotaCreditoExtractor,
    LiquidacionExtractor,
    LiquidacionTipo2Extractor,
    LiquidacionTipo3Extractor,
)

# Forced-only formats
UNRANKED_FORMATS = ('liquidacion_tipo3',)


class ExtractorRegistry:
    """
    Immutable registry of format extractors.

    Provides:
    - Lookup of an extractor by format id (forced mode)
    - Automatic classification by highest detection score
    - Parsing into a ParseResult envelope

    Usage:
        registry = ExtractorRegistry.default()

        # Automatic classification
        result = registry.parse(text)

        # Forced format
        result = registry.parse(text, forced_format='factura_sii')
    """

    def __init__(
        self,
        extractors: Iterable[FormatExtractor],
        ranking: Optional[Sequence[str]] = None,
        dispatch: Optional[Sequence[str]] = None,
        auto_sentinel: str = 'auto',
        max_input_chars: Optional[int] = None,
    ):
        """
        Initialize the registry.

        Args:
            extractors: Extractors in registration order
            ranking: Ids scored in automatic mode (None = all registered)
            dispatch: Ids accepted in forced mode (None = all registered)
            auto_sentinel: Forced id that means "classify automatically"
            max_input_chars: Longer inputs are truncated (None = no limit)

        Raises:
            ValueError: On duplicate ids, ids that are not registered or an
                empty ranking set
        """
        self._extractors: Tuple[FormatExtractor, ...] = tuple(extractors)

        registered = {}
        for extractor in self._extractors:
            if extractor.format_id in registered:
                raise ValueError(f"Format '{extractor.format_id}' already registered")
            registered[extractor.format_id] = extractor

        ranking_ids = list(registered) if ranking is None else list(ranking)
        dispatch_ids = list(registered) if dispatch is None else list(dispatch)

        unknown = [i for i in ranking_ids + dispatch_ids if i not in registered]
        if unknown:
            raise ValueError(f"Unknown format ids: {', '.join(sorted(set(unknown)))}")
        if not ranking_ids:
            raise ValueError("Ranking set cannot be empty")

        self._dispatch: Mapping[str, FormatExtractor] = MappingProxyType(
            {i: registered[i] for i in dispatch_ids}
        )
        self._ranking: Tuple[FormatExtractor, ...] = tuple(registered[i] for i in ranking_ids)

        self.auto_sentinel = auto_sentinel
        self.max_input_chars = max_input_chars

    @classmethod
    def default(cls, **kwargs) -> 'ExtractorRegistry':
        """Registry with every built-in format; forced-only formats unranked."""
        extractors = [extractor_cls() for extractor_cls in BUILTIN_EXTRACTORS]
        kwargs.setdefault('ranking', [
            e.format_id for e in extractors if e.format_id not in UNRANKED_FORMATS
        ])
        return cls(extractors, **kwargs)

    @classmethod
    def from_config(cls, config: EngineConfig) -> 'ExtractorRegistry':
        """
        Build the built-in registry from an engine configuration.

        Raises:
            ConfigError: If ranking or dispatch names an unknown format
        """
        known = {extractor_cls.format_id for extractor_cls in BUILTIN_EXTRACTORS}
        for key in ('ranking', 'dispatch'):
            ids = getattr(config, key)
            unknown = [i for i in (ids or []) if i not in known]
            if unknown:
                raise ConfigError(config.source, f"unknown format ids in {key}: {', '.join(unknown)}")
        if config.ranking is not None and not config.ranking:
            raise ConfigError(config.source, "ranking cannot be empty")

        kwargs = {
            'dispatch': config.dispatch,
            'auto_sentinel': config.auto_sentinel,
            'max_input_chars': config.max_input_chars,
        }
        if config.ranking is not None:
            kwargs['ranking'] = config.ranking
        return cls.default(**kwargs)

    # Lookup

    @property
    def extractors(self) -> Tuple[FormatExtractor, ...]:
        """All registered extractors, registration order."""
        return self._extractors

    @property
    def ranking_set(self) -> Tuple[FormatExtractor, ...]:
        """Extractors scored in automatic mode, tie-break order."""
        return self._ranking

    @property
    def dispatch_set(self) -> Mapping[str, FormatExtractor]:
        """Read-only id → extractor mapping for forced mode."""
        return self._dispatch

    def get(self, format_id: str) -> Optional[FormatExtractor]:
        """Extractor for a dispatchable id, or None."""
        return self._dispatch.get(format_id)

    def by_id(self, format_id: str) -> FormatExtractor:
        """
        Extractor for a dispatchable id.

        Raises:
            UnknownFormatError: If the id is not in the dispatch set
        """
        extractor = self._dispatch.get(format_id)
        if extractor is None:
            raise UnknownFormatError(format_id, list(self._dispatch))
        return extractor

    def list_names(self) -> List[str]:
        """Dispatchable format ids."""
        return list(self._dispatch)

    def list_formats(self) -> List[Tuple[str, str, bool]]:
        """(id, label, ranked) rows for every dispatchable format."""
        ranked = {e.format_id for e in self._ranking}
        return [
            (format_id, extractor.label, format_id in ranked)
            for format_id, extractor in self._dispatch.items()
        ]

    def is_auto(self, forced_format: Optional[str]) -> bool:
        """Whether a forced id means automatic classification."""
        if forced_format is None:
            return True
        forced_format = forced_format.strip()
        return not forced_format or forced_format.lower() == self.auto_sentinel.lower()

    # Classification

    def _prepare(self, text: Optional[str]) -> str:
        text = text or ''
        if self.max_input_chars is not None and len(text) > self.max_input_chars:
            logger.warning(
                f"Input of {len(text)} characters truncated to {self.max_input_chars}"
            )
            text = text[:self.max_input_chars]
        return text

    def _scores(self, text: str) -> List[Tuple[FormatExtractor, float]]:
        scores = []
        for extractor in self._ranking:
            score = extractor.detect(text)
            logger.debug(f"{extractor.format_id}: score = {score}")
            scores.append((extractor, score))
        return scores

    def detect(self, text: str) -> Tuple[FormatExtractor, float]:
        """
        Best-scoring extractor of the ranking set.

        Scores are compared with a strict ">", so the first registered
        extractor wins a tie, including when every score is zero or negative.

        Returns:
            (extractor, score)
        """
        return self._best(self._scores(self._prepare(text)))

    @staticmethod
    def _best(scores: List[Tuple[FormatExtractor, float]]) -> Tuple[Optional[FormatExtractor], float]:
        best: Optional[FormatExtractor] = None
        best_score = 0.0
        for extractor, score in scores:
            if best is None or score > best_score:
                best = extractor
                best_score = score
        return best, best_score

    def detect_all(self, text: str) -> List[Tuple[FormatExtractor, float]]:
        """
        Every ranked extractor with its score, highest first.

        The sort is stable: equal scores keep registration order.
        """
        scores = self._scores(self._prepare(text))
        return sorted(scores, key=lambda pair: pair[1], reverse=True)

    def parse(self, text: str, forced_format: Optional[str] = None) -> ParseResult:
        """
        Classify (or dispatch) and extract.

        Args:
            text: Raw document text
            forced_format: Format id to use without scoring. None, empty
                or the auto sentinel mean automatic classification.

        Returns:
            ParseResult with confidence 1.0 when forced, the winning
            detection score otherwise

        Raises:
            UnknownFormatError: If a forced id is not in the dispatch set
        """
        text = self._prepare(text)

        if not self.is_auto(forced_format):
            extractor = self.by_id(forced_format.strip())
            logger.info(f"Using forced format: {extractor.format_id}")
            return ParseResult(
                format_id=extractor.format_id,
                confidence=1.0,
                fields=extractor.extract(text),
                forced=True,
            )

        scores = self._scores(text)
        best, best_score = self._best(scores)

        logger.info(f"Detected format: {best.format_id} (score: {best_score})")
        return ParseResult(
            format_id=best.format_id,
            confidence=best_score,
            fields=best.extract(text),
            scores=tuple((e.format_id, s) for e, s in scores),
        )

    def __len__(self) -> int:
        return len(self._extractors)

    def __contains__(self, format_id: str) -> bool:
        return format_id in self._dispatch


# Global registry instance
_global_registry = ExtractorRegistry.default(max_input_chars=EngineConfig().max_input_chars)


def get_registry() -> ExtractorRegistry:
    """Get the global registry instance."""
    return _global_registry


def parse_document(text: str, forced_format: Optional[str] = None) -> ParseResult:
    """
    Classify and extract a document with the global registry.

    Args:
        text: Raw document text
        forced_format: Optional format id ("auto" for automatic)

    Returns:
        ParseResult
    """
    return _global_registry.parse(text, forced_format)


def detect_format(text: str) -> Tuple[FormatExtractor, float]:
    """Best-scoring format for text, global registry."""
    return _global_registry.detect(text)


def list_formats() -> List[Tuple[str, str, bool]]:
    """(id, label, ranked) rows of the global registry."""
    return _global_registry.list_formats()
