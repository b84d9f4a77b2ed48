"""
Ledger aggregation: scan qualifying source lines of a period and sum them into
POPDV field buckets.
"""

import threading
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Optional

from loguru import logger

from core.config import config
from core.exceptions import CalculationCancelledError, ValidationError
from core.models.documents import DocumentClass, SourceLine
from core.models.popdv import AggregatedLine, AggregationResult, Direction, RateBucket
from core.observability import record_source_lines
from core.services.aggregation.classification import Placement, classify
from core.services.ledger.ledger_source import LedgerSource
from core.utils.money import ZERO


@dataclass
class _Bucket:
    popdv_field: str
    direction: Direction
    base_os: Decimal = ZERO
    vat_os: Decimal = ZERO
    base_ps: Decimal = ZERO
    vat_ps: Decimal = ZERO
    total_base: Decimal = ZERO
    total_vat: Decimal = ZERO
    entry_count: int = 0

    def add(self, line: SourceLine) -> None:
        bucket = RateBucket.from_rate(line.vat_rate)
        if bucket == RateBucket.OS:
            self.base_os += line.signed_base
            self.vat_os += line.signed_vat
        elif bucket == RateBucket.PS:
            self.base_ps += line.signed_base
            self.vat_ps += line.signed_vat
        self.total_base += line.signed_base
        self.total_vat += line.signed_vat
        self.entry_count += 1

    def freeze(self) -> AggregatedLine:
        return AggregatedLine(
            popdv_field=self.popdv_field,
            direction=self.direction,
            base_os=self.base_os,
            vat_os=self.vat_os,
            base_ps=self.base_ps,
            vat_ps=self.vat_ps,
            total_base=self.total_base,
            total_vat=self.total_vat,
            entry_count=self.entry_count,
        )


class LedgerAggregator:
    """Classifies every qualifying line of a period into POPDV buckets."""

    def __init__(
        self,
        source: LedgerSource,
        page_size: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.page_size = page_size or config.aggregation.page_size
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else config.aggregation.timeout_seconds
        )
        self._clock = clock

    def aggregate(
        self,
        legal_entity_id: Optional[str],
        start_date: date,
        end_date: date,
        cancel_event: Optional[threading.Event] = None,
    ) -> AggregationResult:
        """
        Aggregate all qualifying lines in [start_date, end_date].

        Args:
            legal_entity_id: Entity filter, None for all entities of the tenant
            start_date: Inclusive period start
            end_date: Inclusive period end
            cancel_event: Checked between pages; when set the scan stops

        Returns:
            Output, reverse-charge and input buckets sorted by field code

        Raises:
            ValidationError: If the range is inverted
            UnknownAccountClassification: If any qualifying line cannot be classified
            CalculationCancelledError: On cancellation or timeout
        """
        if start_date > end_date:
            raise ValidationError(
                "start_date must not be after end_date",
                {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        deadline = (
            self._clock() + self.timeout_seconds if self.timeout_seconds else None
        )
        output: Dict[str, _Bucket] = {}
        reverse_charge: Dict[str, _Bucket] = {}
        inputs: Dict[str, _Bucket] = {}
        source_line_count = 0

        for document_class in DocumentClass:
            class_count = 0
            for line in self._scan(
                document_class,
                legal_entity_id,
                start_date,
                end_date,
                cancel_event,
                deadline,
            ):
                for placement in classify(line):
                    target = self._target(placement, output, reverse_charge, inputs)
                    bucket = target.get(placement.popdv_field)
                    if bucket is None:
                        bucket = _Bucket(placement.popdv_field, placement.direction)
                        target[placement.popdv_field] = bucket
                    bucket.add(line)
                class_count += 1

            record_source_lines(document_class.value, class_count)
            source_line_count += class_count

        result = AggregationResult(
            output_lines=_freeze(output),
            reverse_charge_lines=_freeze(reverse_charge),
            input_lines=_freeze(inputs),
            source_line_count=source_line_count,
        )
        logger.info(
            f"Aggregated {source_line_count} lines for {start_date}..{end_date}: "
            f"{len(result.output_lines)} output, "
            f"{len(result.reverse_charge_lines)} reverse-charge, "
            f"{len(result.input_lines)} input buckets"
        )
        return result

    def _scan(
        self,
        document_class: DocumentClass,
        legal_entity_id: Optional[str],
        start_date: date,
        end_date: date,
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
    ) -> Iterator[SourceLine]:
        """Yield qualifying lines page by page."""
        offset = 0
        while True:
            self._check_cancelled(cancel_event, deadline, document_class, offset)
            page = self.source.fetch_lines(
                document_class,
                legal_entity_id,
                start_date,
                end_date,
                offset,
                self.page_size,
            )
            for line in page:
                if not line.is_qualifying():
                    continue
                if not start_date <= line.vat_date <= end_date:
                    continue
                if legal_entity_id is not None and line.legal_entity_id != legal_entity_id:
                    continue
                yield line

            if len(page) < self.page_size:
                return
            offset += self.page_size

    def _check_cancelled(
        self,
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
        document_class: DocumentClass,
        offset: int,
    ) -> None:
        details = {"document_class": document_class.value, "offset": offset}
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Ledger scan cancelled at {document_class.value}:{offset}")
            raise CalculationCancelledError("Ledger scan cancelled", details=details)
        if deadline is not None and self._clock() > deadline:
            logger.warning(
                f"Ledger scan exceeded {self.timeout_seconds}s at "
                f"{document_class.value}:{offset}"
            )
            raise CalculationCancelledError(
                "Ledger scan timed out", timed_out=True, details=details
            )

    @staticmethod
    def _target(
        placement: Placement,
        output: Dict[str, _Bucket],
        reverse_charge: Dict[str, _Bucket],
        inputs: Dict[str, _Bucket],
    ) -> Dict[str, _Bucket]:
        if placement.reverse_charge:
            return reverse_charge
        if placement.direction == Direction.OUTPUT:
            return output
        return inputs


def _freeze(buckets: Dict[str, _Bucket]) -> List[AggregatedLine]:
    return [buckets[code].freeze() for code in sorted(buckets)]
