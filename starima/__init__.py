"""STARIMA package.

English:
    Space-time ARIMA modelling of monthly maximum temperature aggregated to
    administrative boroughs: space-time autocorrelation diagnostics,
    iterative least-squares fitting and rolled-forward forecasting.

日本語:
    行政区単位に集計した月別最高気温の時空間ARIMA（STARIMA）モデリングを
    行うパッケージです。時空間自己相関の診断、反復最小二乗による推定、
    逐次予測を提供します。
"""

from .version import __version__
