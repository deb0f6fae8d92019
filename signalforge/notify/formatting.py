"""Text rendering for signal and outcome notifications (Telegram Markdown)."""

from signalforge.models.signal import Signal
from signalforge.tracker import SignalOutcome


def format_price(price: float) -> str:
    """Dynamic precision: 4 dp below 1, 3 dp below 10, else 2 dp."""
    if price < 1:
        return f"{price:.4f}"
    if price < 10:
        return f"{price:.3f}"
    return f"{price:.2f}"


def format_signal_message(signal: Signal) -> str:
    emoji = "🟢" if signal.direction == "LONG" else "🔴"
    reasons = "\n".join(f"✓ {r}" for r in signal.reasons)
    return (
        f"{emoji} *SIGNAL {signal.strategy} - {signal.direction}*\n"
        f"━━━━━━━━━━━━━━━━━━━━\n"
        f"📊 {signal.symbol} @ ${format_price(signal.entry)}\n"
        f"🔥 Score: {signal.score:.0f}/100\n"
        f"📈 Regime: {signal.regime}\n\n"
        f"💰 Entry: ${format_price(signal.entry)}\n"
        f"🛡️ SL: ${format_price(signal.stop)} (-{signal.stop_percent:.1f}%)\n"
        f"🎯 TP: ${format_price(signal.target)} (+{signal.target_percent:.1f}%)\n"
        f"💵 Size: ${signal.size:.0f} USDT\n\n"
        f"📋 Reasons:\n{reasons}\n\n"
        f"⏰ {signal.timestamp}"
    )


def format_outcome_message(signal: Signal, outcome: SignalOutcome) -> str:
    emoji = "✅" if outcome.status == "TP_HIT" else "❌"
    hours, minutes = divmod(int(outcome.hold_minutes), 60)
    pnl_sign = "+" if outcome.pnl_percent >= 0 else ""
    usdt_sign = "+" if outcome.pnl_usdt >= 0 else "-"
    return (
        f"{emoji} *{outcome.status.replace('_', ' ')} - {signal.symbol}*\n"
        f"━━━━━━━━━━━━━━━━━━━━\n"
        f"📊 Strategy: {signal.strategy}\n"
        f"💰 Entry: ${format_price(signal.entry)}\n"
        f"🎯 Exit: ${format_price(outcome.exit_price)}\n"
        f"📈 PnL: {pnl_sign}{outcome.pnl_percent:.2f}% "
        f"({usdt_sign}${abs(outcome.pnl_usdt):.2f} USDT)\n"
        f"⏱️ Duration: {hours}h {minutes}m\n"
        f"🔥 Score: {signal.score:.0f}/100"
    )
