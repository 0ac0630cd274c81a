"""Fixed Pintintin rules. These are not configurable per game."""

WIN_THRESHOLD = 150
PLAYERS_PER_GAME = 3

# Score shortcuts offered to clients; any positive amount is accepted
POINT_INCREMENTS = (5, 10, 20, 50)

# Canonical fouls. Other labels are recorded verbatim.
FOUL_PASS_WITH_TILE = 'Pase con ficha'
FOUL_PLAYED_EARLY = 'Jugo adelantado'
FOUL_ILLEGAL_DISCARD = 'Chivo'
FOUL_LABELS = (FOUL_PASS_WITH_TILE, FOUL_PLAYED_EARLY, FOUL_ILLEGAL_DISCARD)

LOSS_POINTS = 'points'
LOSS_FOUL = 'foul'

STATE_OPEN = 'open'
STATE_TIE_PENDING = 'tie_pending'
STATE_FINISHED = 'finished'
