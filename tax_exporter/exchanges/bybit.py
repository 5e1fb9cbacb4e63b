from tax_exporter.exchanges.ccxt_perp import CcxtPerpAdapter, base_asset
from tax_exporter.core.classification import classify_perp_side
from tax_exporter.core.models import PerpRecord, from_unix
from tax_exporter.core.sources import BYBIT
import ccxt

# Bybit closed-pnl exec types for forced closes (bankruptcy / auto-deleverage)
_LIQUIDATION_EXEC_TYPES = ("BustTrade", "AdlTrade")

class BybitAdapter(CcxtPerpAdapter):
    """Bybit USDT perps for the account behind an API key pair."""
    name = BYBIT
    exchange_name = "Bybit"
    chain = "bybit"

    def __init__(self, api_key=None, api_secret=None, exchange=None, logger=None):
        super().__init__(exchange=exchange, logger=logger)
        self._api_key = api_key
        self._api_secret = api_secret

    def _build_exchange(self):
        exchange = ccxt.bybit({
            'apiKey': self._api_key,
            'secret': self._api_secret,
        })
        exchange.options['defaultType'] = 'swap'  # Use 'swap' instead of 'future'
        return exchange

    def _position_params(self, account_id):
        return {'category': 'linear'}

    def _closed_positions(self, account_id):
        history = self.exchange.fetch_positions_history(None, None, 100, {'category': 'linear'})

        records = []
        for position in history or []:
            record = self._safe(self.closed_position_to_record, position)
            if record is not None:
                records.append(record)
        return records

    def closed_position_to_record(self, position):
        info = position.get('info') or {}
        qty = float(info.get('closedSize') or info.get('qty') or position.get('contracts') or 0)
        if qty == 0:
            return None
        # info.side is the side of the closing order: a Sell closes a long
        position_size = qty if info.get('side') == 'Sell' else -qty

        updated = info.get('updatedTime') or position.get('timestamp')
        fees = abs(float(info.get('openFee') or 0)) + abs(float(info.get('closeFee') or 0))
        return PerpRecord(
            timestamp=from_unix(float(updated), unit='ms'),
            asset=base_asset(position.get('symbol') or info['symbol'].replace('USDT', '/USDT')),
            side=classify_perp_side(position_size),
            quantity=abs(position_size),
            position_size=position_size,
            entry_price=float(info['avgEntryPrice']),
            exit_price=float(info['avgExitPrice']),
            pnl=float(info['closedPnl']),
            fees=fees,
            funding=0.0,
            exchange=self.exchange_name,
            leverage=float(info.get('leverage') or 0),
            liquidation=info.get('execType') in _LIQUIDATION_EXEC_TYPES,
            hash=info.get('orderId') or str(position.get('id')),
            chain=self.chain,
        )
