from typing import Tuple


def generate_hints(answer: str) -> Tuple[str, str]:
    """Derive the two progressive hints for an answer.

    Hint 1 shows each word's first letter and a blank per remaining letter,
    followed by the word count. Hint 2 reveals the letters at even positions
    of every word.
    """
    words = answer.split() or ['?']
    letters = ' '.join(w[0].upper() + '_' * (len(w) - 1) for w in words)
    plural = 's' if len(words) > 1 else ''
    hint1 = f"{letters} ({len(words)} word{plural})"
    hint2 = ' '.join(
        ''.join(c.upper() if i % 2 == 0 else '_' for i, c in enumerate(w))
        for w in words
    )
    return hint1, hint2
