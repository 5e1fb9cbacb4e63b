from tax_exporter.exchanges.ccxt_perp import CcxtPerpAdapter, base_asset
from tax_exporter.core.classification import classify_perp_side
from tax_exporter.core.models import PerpRecord, from_unix
from tax_exporter.core.sources import HYPERLIQUID
import ccxt

# Fill directions that reduce or close an existing position
_CLOSING_DIRS = ("Close Long", "Close Short", "Long > Short", "Short > Long")

class HyperliquidAdapter(CcxtPerpAdapter):
    """Hyperliquid perps, looked up by wallet address on the public info API."""
    name = HYPERLIQUID
    exchange_name = "Hyperliquid"
    chain = "hyperliquid"

    def _build_exchange(self):
        exchange = ccxt.hyperliquid()
        exchange.options['defaultType'] = 'swap'
        return exchange

    def _position_params(self, account_id):
        return {'user': account_id}

    def _closed_positions(self, account_id):
        fills = self.exchange.fetch_my_trades(None, None, None, {'user': account_id})

        records = []
        for fill in fills or []:
            record = self._safe(self.fill_to_record, fill)
            if record is not None:
                records.append(record)
        return records

    def fill_to_record(self, fill):
        info = fill.get('info') or {}
        direction = info.get('dir', '')
        liquidation = bool(info.get('liquidation'))
        if direction not in _CLOSING_DIRS and not liquidation:
            return None

        size = float(info.get('sz') or fill['amount'])
        start_position = float(info.get('startPosition') or 0)
        # Flip fills close at most the starting position
        closed_size = min(size, abs(start_position)) if start_position else size
        position_size = closed_size if start_position >= 0 else -closed_size

        exit_price = float(info.get('px') or fill['price'])
        pnl = float(info.get('closedPnl') or 0)
        # closedPnl = (exit - entry) * size  =>  entry = exit - pnl / size
        entry_price = exit_price - pnl / position_size if position_size else exit_price

        fee = fill.get('fee') or {}
        tx_hash = info.get('hash') or ''
        return PerpRecord(
            timestamp=from_unix(fill['timestamp'], unit='ms'),
            asset=info.get('coin') or base_asset(fill['symbol']),
            side=classify_perp_side(position_size),
            quantity=abs(position_size),
            position_size=position_size,
            entry_price=entry_price,
            exit_price=exit_price,
            pnl=pnl,
            fees=abs(float(fee.get('cost') or info.get('fee') or 0)),
            funding=0.0,
            exchange=self.exchange_name,
            leverage=0,
            liquidation=liquidation,
            hash=f"{tx_hash}-{fill.get('id')}" if tx_hash else str(fill.get('id')),
            chain=self.chain,
        )

    def _open_funding(self, position):
        cum_funding = ((position.get('info') or {}).get('position') or {}).get('cumFunding') or {}
        # Hyperliquid reports funding paid as positive; records store funding received
        return -float(cum_funding.get('sinceOpen') or 0)
