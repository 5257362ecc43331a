# Script handlers for generic-2deck.midi.xml.
# Handlers receive (deck, binding, value, status, group).

class Generic2Deck:
    # Filter knob center detent, in raw 7-bit units
    CENTER = 64

    @staticmethod
    def init(controller_id, debugging):
        console.log("init", controller_id)
        for group in ("[Channel1]", "[Channel2]"):
            engine.setValue(group, "volume", 0)

    @staticmethod
    def shutdown():
        console.log("shutdown")

    @staticmethod
    def wheelTouch(deck, binding, value, status, group):
        # Touching the wheel cues the deck, releasing resumes where it was
        engine.setValue(group, "cue_default", 1 if value > 0 else 0)

    @staticmethod
    def filterSweep(deck, binding, value, status, group):
        # One knob for the whole EQ: left cuts highs, right cuts lows
        eq = "[EqualizerRack1_[Channel%d]_Effect1]" % script.deckFromGroup(group)
        offset = (value - Generic2Deck.CENTER) / Generic2Deck.CENTER
        engine.setParameter(eq, "parameter1", 1 - max(offset, 0))
        engine.setParameter(eq, "parameter3", 1 + min(offset, 0))
