"""
Human-readable weather indicators used in prompts and logs.
"""

from ..core.types import EnsembleForecast, WeatherSnapshot


def forecast_agreement(weather: WeatherSnapshot) -> str:
    """Compare the NWS forecast high with the Open-Meteo forecast high."""
    om_high = weather.open_meteo_forecast_high
    nws_high = weather.nws_forecast_high

    if nws_high is None:
        return f"NWS unavailable. Open-Meteo forecast high: {om_high:.0f}°F"

    diff = abs(nws_high - om_high)
    if diff <= 1.0:
        return f"Strong agreement: NWS {nws_high:.0f}°F vs Open-Meteo {om_high:.0f}°F (within 1°F)"
    if diff <= 3.0:
        return f"Moderate agreement: NWS {nws_high:.0f}°F vs Open-Meteo {om_high:.0f}°F ({diff:.0f}°F apart)"
    return f"Disagreement: NWS {nws_high:.0f}°F vs Open-Meteo {om_high:.0f}°F ({diff:.0f}°F apart)"


def ensemble_summary(ensemble: EnsembleForecast) -> str:
    """One-line summary of ensemble statistics."""
    return (
        f"{ensemble.model_count} members | Mean: {ensemble.mean_high:.1f}°F | "
        f"Range: {ensemble.min_high:.0f}–{ensemble.max_high:.0f}°F | "
        f"Std dev: {ensemble.std_dev:.1f}°F | "
        f"P10/P25/P75/P90: {ensemble.p10:.0f}/{ensemble.p25:.0f}/{ensemble.p75:.0f}/{ensemble.p90:.0f}°F"
    )
