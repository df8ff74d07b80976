# evoting/sentiment.py
# Keyword lexicon used to tag reviews as positive / negative / neutral.
import re

POSITIVE_WORDS = {
    "amazing", "awesome", "best", "clean", "clear", "convenient", "easy",
    "efficient", "excellent", "fast", "fine", "good", "great", "helpful",
    "intuitive", "like", "love", "nice", "perfect", "quick", "reliable",
    "secure", "simple", "smooth", "straightforward", "transparent", "trust",
    "useful", "wonderful", "works",
}

NEGATIVE_WORDS = {
    "annoying", "bad", "broken", "bug", "buggy", "confusing", "crash",
    "difficult", "error", "fail", "failed", "hard", "hate", "insecure",
    "poor", "problem", "slow", "stuck", "terrible", "unclear", "unreliable",
    "unsafe", "useless", "worst", "wrong",
}

NEGATIONS = {"not", "no", "never", "isn't", "wasn't", "don't", "didn't", "doesn't", "hardly"}

WORD_RE = re.compile(r"[a-z']+")


def classify_sentiment(text: str) -> str:
    """
    Score the text by counting lexicon hits; a negation within the two
    preceding words flips the polarity of a hit.
    """
    words = WORD_RE.findall(text.lower())
    score = 0
    for i, word in enumerate(words):
        if word in POSITIVE_WORDS:
            polarity = 1
        elif word in NEGATIVE_WORDS:
            polarity = -1
        else:
            continue
        if any(w in NEGATIONS for w in words[max(0, i - 2):i]):
            polarity = -polarity
        score += polarity

    if score > 0:
        return "positive"
    if score < 0:
        return "negative"
    return "neutral"
