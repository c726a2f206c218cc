import random

# Challenge words the system plays in solo word matches
WORD_BANK = [
    'fire', 'water', 'stone', 'wind', 'shadow', 'light', 'iron', 'storm',
    'frost', 'thunder', 'dragon', 'mirror', 'forest', 'ocean', 'sword',
    'shield', 'time', 'silence', 'echo', 'root', 'flame', 'glacier',
    'volcano', 'whisper', 'crown', 'chain', 'spark', 'tide', 'dust', 'star',
]


def pick_challenge_word(rng=random):
    return rng.choice(WORD_BANK)


def pick_rps_move(rng=random):
    return rng.choice(['rock', 'paper', 'scissors'])
