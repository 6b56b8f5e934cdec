"""
Sistema declarativo para cálculo de indicadores técnicos sobre velas.
"""

from typing import Dict, List, Callable, Any, Optional, Sequence
from dataclasses import dataclass

import pandas as pd
import pandas_ta as ta

from contracts.indicator_settings import IndicatorSettings
from contracts.market_contract import Candle
from utils.logger import Logger

logger = Logger.get_logger(__name__)


@dataclass
class IndicatorConfig:
    """Configuración de un indicador técnico."""
    name: str  # Nombre del indicador (ej: "RSI", "MACD")
    function: Callable  # Función para calcularlo (ej: ta.rsi)
    params: Dict[str, Any]  # Parámetros (ej: {"length": 14})
    source: str = "close"  # Columna fuente
    output_column: Optional[str] = None  # Nombre personalizado de salida


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Velas (más antigua primero) a DataFrame OHLCV."""
    return pd.DataFrame(
        {
            "time": [c.time for c in candles],
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        }
    )


class IndicatorCalculator:
    """
    Calculadora de indicadores técnicos con sistema declarativo.

    Ejemplo de uso:
        calculator = IndicatorCalculator()
        calculator.add_rsi(length=14)
        calculator.add_macd(12, 26, 9)
        df = calculator.compute(df)

    Columnas producidas: RSI, MACD / MACD_signal / MACD_hist, BBL / BBM / BBU,
    EMA_SHORT / EMA_LONG. Si no hay historia suficiente la columna queda en None.
    """

    def __init__(self):
        self.indicators: List[IndicatorConfig] = []

    def add_indicator(
        self,
        name: str,
        function: Callable,
        params: Dict[str, Any],
        source: str = "close",
        output_column: Optional[str] = None,
    ) -> 'IndicatorCalculator':
        self.indicators.append(
            IndicatorConfig(
                name=name,
                function=function,
                params=params,
                source=source,
                output_column=output_column or name,
            )
        )
        logger.debug(f"Indicador añadido: {name} con params {params}")
        return self

    def add_rsi(self, length: int = 14) -> 'IndicatorCalculator':
        return self.add_indicator("RSI", ta.rsi, {"length": length})

    def add_macd(self, fast: int = 12, slow: int = 26, signal: int = 9) -> 'IndicatorCalculator':
        return self.add_indicator("MACD", ta.macd, {"fast": fast, "slow": slow, "signal": signal})

    def add_bbands(self, length: int = 20, std: float = 2.0) -> 'IndicatorCalculator':
        return self.add_indicator("BBANDS", ta.bbands, {"length": length, "std": std})

    def add_ema(self, length: int, name: str) -> 'IndicatorCalculator':
        return self.add_indicator(name, ta.ema, {"length": length})

    @classmethod
    def from_settings(cls, settings: IndicatorSettings) -> 'IndicatorCalculator':
        """Calculadora con los indicadores habilitados en la configuración del bot."""
        calc = cls()
        if settings.rsi.enabled:
            calc.add_rsi(settings.rsi.period)
        if settings.macd.enabled:
            calc.add_macd(settings.macd.fast_period, settings.macd.slow_period, settings.macd.signal_period)
        if settings.bollinger_bands.enabled:
            calc.add_bbands(settings.bollinger_bands.period, settings.bollinger_bands.std_dev)
        if settings.ema.enabled:
            calc.add_ema(settings.ema.short_period, "EMA_SHORT")
            calc.add_ema(settings.ema.long_period, "EMA_LONG")
        return calc

    def compute(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Calcula todos los indicadores configurados.

        Args:
            df: DataFrame con datos OHLCV

        Returns:
            DataFrame con indicadores añadidos
        """
        result = df.copy().reset_index(drop=True)

        for indicator in self.indicators:
            source_series = result[indicator.source].astype(float)
            calculated = indicator.function(source_series, **indicator.params)

            # pandas_ta devuelve None cuando la serie es más corta que el período
            if calculated is None:
                logger.debug(f"Insuficientes datos para {indicator.name}: {len(result)} filas")
                self._fill_missing(result, indicator)
            elif isinstance(calculated, pd.DataFrame):
                self._handle_multi_column_indicator(result, calculated, indicator)
            elif isinstance(calculated, pd.Series):
                result[indicator.output_column] = calculated.values
            else:
                logger.warning(f"Resultado inesperado de {indicator.name}: {type(calculated)}")
                self._fill_missing(result, indicator)

        return result

    @staticmethod
    def _output_columns(indicator: IndicatorConfig) -> List[str]:
        if indicator.name == "BBANDS":
            return ["BBL", "BBM", "BBU"]
        if indicator.name == "MACD":
            return ["MACD", "MACD_signal", "MACD_hist"]
        return [indicator.output_column]

    def _fill_missing(self, result: pd.DataFrame, indicator: IndicatorConfig):
        for column in self._output_columns(indicator):
            result[column] = None

    def _handle_multi_column_indicator(
        self,
        result: pd.DataFrame,
        calculated: pd.DataFrame,
        indicator: IndicatorConfig
    ):
        """Maneja indicadores que devuelven múltiples columnas (Bollinger, MACD)."""
        if indicator.name == "BBANDS":
            # Buscar columnas generadas por pandas_ta
            bbl_col = next((c for c in calculated.columns if c.startswith('BBL_')), None)
            bbm_col = next((c for c in calculated.columns if c.startswith('BBM_')), None)
            bbu_col = next((c for c in calculated.columns if c.startswith('BBU_')), None)

            if bbl_col and bbm_col and bbu_col:
                result['BBL'] = calculated[bbl_col].values
                result['BBM'] = calculated[bbm_col].values
                result['BBU'] = calculated[bbu_col].values
            else:
                logger.warning(f"No se encontraron columnas BB esperadas en: {list(calculated.columns)}")
                self._fill_missing(result, indicator)

        elif indicator.name == "MACD":
            # MACD devuelve línea, señal e histograma
            macd_col = next((c for c in calculated.columns if c.startswith('MACD_')), None)
            signal_col = next((c for c in calculated.columns if c.startswith('MACDs_')), None)
            hist_col = next((c for c in calculated.columns if c.startswith('MACDh_')), None)

            if macd_col and signal_col and hist_col:
                result['MACD'] = calculated[macd_col].values
                result['MACD_signal'] = calculated[signal_col].values
                result['MACD_hist'] = calculated[hist_col].values
            else:
                logger.warning(f"No se encontraron columnas MACD esperadas en: {list(calculated.columns)}")
                self._fill_missing(result, indicator)

        else:
            for col in calculated.columns:
                result[f"{indicator.output_column}_{col}"] = calculated[col].values


def last_values(series: pd.Series, count: int = 1) -> Optional[List[float]]:
    """Últimos `count` valores como float; None si falta alguno (NaN / None)."""
    if series is None or len(series) < count:
        return None
    tail = pd.to_numeric(series.iloc[-count:], errors="coerce")
    if tail.isna().any():
        return None
    return [float(v) for v in tail]
