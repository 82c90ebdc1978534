"""Eligibility rules deciding whether a candidate string is a usable vocabulary word."""
from __future__ import annotations

import logging
import re

from vocab_pipeline.models import EligibilityResult
from vocab_pipeline.providers.base import LexicalProvider, ProviderError

log = logging.getLogger("vocab_pipeline.filter")

STOP_WORDS = frozenset("""
    the a an in on at by for to of with under over through above below from into
    onto upon within without is are was were be been being have has had do does
    did can could will would shall should may might must and but or nor yet so
    because although since unless whether while i you he she it we they me him
    her us them my your his its our their mine yours hers ours theirs this that
    these those who whom whose which what each every either neither some any no
    many much few little not very too only just also then still rather one two
    three four five six seven eight nine ten first second third fourth fifth
    hundred thousand day week month year time today tomorrow yesterday now
    always never often sometimes
""".split())

BASIC_EMOTIONS = frozenset("""
    happy sad angry good bad nice mean like love hate want need hope fear glad
    sorry upset hurt pleased worried calm excited bored tired hungry thirsty
""".split())

BASIC_DESCRIPTORS = frozenset("""
    big small large little tall short long hot cold warm cool new old young high
    low more less most least many few all none some any same different other
    another good bad best worst better worse easy hard simple difficult full
    empty heavy light dark bright fast slow quick early late right wrong true
    false real fake
""".split())

BASIC_ACTIONS = frozenset("""
    go come get take make do give put say tell ask answer speak talk call see
    look watch hear listen think know feel believe understand remember forget
    find lose search seek try attempt use work play read write draw paint eat
    drink sleep wake rest sit stand lie move run walk jump climb fall rise start
    begin stop end finish continue buy sell pay spend cost save open close turn
    push pull carry break fix build destroy change remain
""".split())

TIME_PLACE_WORDS = frozenset("""
    now then today tomorrow yesterday morning afternoon evening night midnight
    noon second minute hour day week month year always never sometimes often
    rarely usually before after during while until since past present future
    soon later early here there where anywhere nowhere everywhere somewhere in
    out inside outside inner outer above below over under up down near far close
    distant ahead behind left right center middle side front back home away
    around between among
""".split())

QUANTITY_WORDS = frozenset("""
    much many more most little less least few fewer fewest some any no none all
    every each either neither both several numerous countless pair couple first
    second third last next previous half quarter part whole entire complete
    enough plenty abundant scarce sufficient almost nearly approximately exactly
    precisely about around roughly
""".split())

INTENSIFIERS = frozenset("""
    very really quite extremely incredibly absolutely completely totally
    entirely fully perfectly just simply only merely almost nearly hardly
    barely scarcely somewhat rather fairly pretty even still so too enough
    definitely certainly surely clearly obviously
""".split())

QUESTION_WORDS = frozenset("""
    what when where who whom whose which why how whatever whenever wherever
    whoever whomever whichever however
""".split())

POSSESSIVES = frozenset("""
    my your his her its our their mine yours hers ours theirs this that these
    those myself yourself himself herself itself ourselves yourselves themselves
""".split())

FILLER_WORDS = frozenset("""
    well um uh like sort kind actually basically literally honestly frankly
    anyway anyhow right okay so
""".split())

COMMON_ABBREVIATIONS = frozenset("""
    mr mrs ms dr prof rev gen hon st rd etc ie eg vs viz inc co corp ltd
""".split())

INTERNET_TERMS = frozenset("""
    lol omg btw fyi asap brb afk ttyl tbh imo aka diy faq rip tba tbd nvm idk jk
    np url www http html css app blog vlog email login logout signup download
    upload share tweet post
""".split())

FILTERED_WORDS = (
    STOP_WORDS
    | BASIC_EMOTIONS
    | BASIC_DESCRIPTORS
    | BASIC_ACTIONS
    | TIME_PLACE_WORDS
    | QUANTITY_WORDS
    | INTENSIFIERS
    | QUESTION_WORDS
    | POSSESSIVES
    | FILLER_WORDS
    | COMMON_ABBREVIATIONS
    | INTERNET_TERMS
)

_DIGIT = re.compile(r"\d")
_LEADING_CAPITAL = re.compile(r"^[A-Z]")
_NOT_LETTER_OR_HYPHEN = re.compile(r"[^a-zA-Z\-]")
_REPETITION = re.compile(r"(.{2,})\1{2,}")


def is_eligible(candidate: str) -> EligibilityResult:
    """Run the shape rules in order; the first failing rule is reported."""
    word = candidate.strip()

    if len(word) < 3:
        return EligibilityResult(False, "Too short (less than 3 characters)")
    if " " in word:
        return EligibilityResult(False, "Contains spaces (multi-word phrase)")
    if _DIGIT.search(word):
        return EligibilityResult(False, "Contains numbers")
    if _LEADING_CAPITAL.match(word):
        return EligibilityResult(False, "Appears to be a proper noun (starts with capital)")
    if word == word.upper() and len(word) <= 5:
        return EligibilityResult(False, "Appears to be an abbreviation (all caps)")
    if "'" in word:
        return EligibilityResult(False, "Contains a contraction or apostrophe")
    if _NOT_LETTER_OR_HYPHEN.search(word):
        return EligibilityResult(False, "Contains special characters")

    lower = word.lower()
    if lower in FILTERED_WORDS:
        return EligibilityResult(False, f'Basic/common word "{word}"')

    if "-" in word:
        if word.count("-") > 1:
            return EligibilityResult(False, "Contains multiple hyphens")
        if any(len(part) < 2 for part in word.split("-")):
            return EligibilityResult(False, "Hyphenated with very short components")

    if _REPETITION.search(lower):
        return EligibilityResult(False, "Contains excessive character repetition")

    return EligibilityResult(True)


async def is_eligible_advanced(
    candidate: str,
    provider: LexicalProvider,
    frequency_threshold: float = 0.85,
    max_expected_frequency: float = 75.0,
) -> EligibilityResult:
    """Shape rules, then reject words the frequency service reports as too common.

    Service failures leave the word eligible.
    """
    basic = is_eligible(candidate)
    if not basic.valid:
        return basic

    word = candidate.strip()
    try:
        signal = await provider.lookup(word)
    except ProviderError as e:
        log.warning("Frequency check failed for %r, keeping word: %s", word, e)
        return EligibilityResult(True)

    if signal is None or signal.frequency is None:
        return EligibilityResult(True)

    normalized = min(signal.frequency / max_expected_frequency, 1.0)
    if normalized > frequency_threshold:
        return EligibilityResult(
            False, f"Too common (frequency score: {round(normalized * 100)}%)"
        )
    return EligibilityResult(True)
