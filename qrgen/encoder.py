import logging
from typing import Protocol

import qrcode
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.exceptions import DataOverflowError

from qrgen.config import EncodingConfig
from qrgen.errors import CapacityExceededError, EncodingError
from qrgen.schemas import ErrorCorrection, QRMatrix


logger = logging.getLogger(__name__)

_QRCODE_LEVELS = {
    ErrorCorrection.LOW: ERROR_CORRECT_L,
    ErrorCorrection.MEDIUM: ERROR_CORRECT_M,
    ErrorCorrection.QUARTILE: ERROR_CORRECT_Q,
    ErrorCorrection.HIGH: ERROR_CORRECT_H,
}
_STRENGTH_ORDER = [ErrorCorrection.LOW, ErrorCorrection.MEDIUM, ErrorCorrection.QUARTILE, ErrorCorrection.HIGH]


def symbol_size(version: int) -> int:
    return version * 4 + 17


class SymbolEncoder(Protocol):
    def encode(self, payload: str, config: EncodingConfig) -> QRMatrix: ...


class QrcodeEncoder:
    """QR Code Model 2 encoder backed by the ``qrcode`` package.

    Picks the smallest version in ``[version_min, version_max]`` that holds the
    payload at the requested level. With boosting on, the level is then raised
    as far as the chosen version still allows. A fixed mask is applied as
    given, otherwise the library's penalty heuristic picks one.
    """

    def encode(self, payload: str, config: EncodingConfig) -> QRMatrix:
        level = config.error_correction
        qr = self._fit(payload, level, config)

        if config.boost_error_correction:
            for stronger in _STRENGTH_ORDER[_STRENGTH_ORDER.index(level) + 1 :]:
                try:
                    candidate = self._fit(payload, stronger, config, start=qr.version)
                except CapacityExceededError:
                    break
                if candidate.version != qr.version:
                    break
                qr, level = candidate, stronger

        try:
            qr.make(fit=False)
        except DataOverflowError as exc:
            raise CapacityExceededError(self._capacity_reason(payload, config)) from exc
        except (ValueError, TypeError) as exc:
            raise EncodingError(f"encoder rejected payload: {exc}") from exc

        logger.debug(
            "payload encoded",
            extra={"version": qr.version, "error_correction": level.value, "mask": qr.mask_pattern},
        )
        modules = tuple(tuple(bool(module) for module in row) for row in qr.modules)
        return QRMatrix(version=qr.version, modules=modules)

    def _fit(
        self,
        payload: str,
        level: ErrorCorrection,
        config: EncodingConfig,
        start: int | None = None,
    ) -> qrcode.QRCode:
        try:
            qr = qrcode.QRCode(error_correction=_QRCODE_LEVELS[level], border=0, mask_pattern=config.mask)
        except ValueError as exc:
            raise EncodingError(f"encoder rejected configuration: {exc}") from exc

        qr.add_data(payload)
        try:
            version = qr.best_fit(start=start or config.version_min)
        except (DataOverflowError, ValueError) as exc:
            raise CapacityExceededError(self._capacity_reason(payload, config, level)) from exc

        if version > config.version_max:
            raise CapacityExceededError(self._capacity_reason(payload, config, level))
        return qr

    @staticmethod
    def _capacity_reason(payload: str, config: EncodingConfig, level: ErrorCorrection | None = None) -> str:
        level = level or config.error_correction
        return (
            f"capacity exceeded: payload of {len(payload)} characters does not fit "
            f"QR version {config.version_max} at error correction {level.value}"
        )
