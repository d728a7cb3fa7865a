"""
pump.fun bonding-curve program support.

- constants: program, global, fee and event-authority addresses; discriminators.
- codec: instruction / trade-payload wire format.
- addresses: bonding curve PDA and associated token account derivation.
- accounts / market_state: account layouts, MarketStateReader, quotes.
- instructions: TradeInstructionBuilder.
"""
