"""Embedded curated dictionary used by the word-list scan mode."""

import hashlib

COMMON_WORDS = (
    "cloud", "cyber", "pixel", "media", "audio", "video", "solar", "smart",
    "power", "spark", "flash", "blaze", "boost", "prime", "nexus", "alpha",
    "omega", "ultra", "micro", "macro", "quick", "swift", "rapid", "turbo",
    "hyper", "super", "stack", "scale", "scope", "space", "pulse", "surge",
    "forge", "craft", "build", "maker", "works", "logic", "brain", "think",
    "learn", "teach", "coach", "guide", "laser", "radar", "money", "funds",
    "trade", "stock", "asset", "value", "worth", "trust", "brand", "sales",
    "deals", "price", "cheap", "store", "shops", "yield", "gains", "bonus",
    "prize", "award", "elite", "green", "fresh", "bloom", "flora", "fauna",
    "earth", "ocean", "river", "storm", "sunny", "clear", "light", "shine",
    "flame", "water", "stone", "pearl", "amber", "coral", "maple", "glow",
    "happy", "lucky", "magic", "dream", "vivid", "vital", "alive", "awake",
    "begin", "start", "first", "final", "quest", "reach", "climb", "speed",
    "agile", "focus", "sharp", "exact", "ideal", "soar", "delta", "sigma",
    "gamma", "theta", "metro", "urban", "civic", "royal", "noble", "grand",
    "titan", "giant", "brave", "solid", "sleek", "slick", "crisp", "clean",
    "pure", "bold", "apple", "grape", "lemon", "melon", "berry", "mango",
    "peach", "olive", "honey", "sugar", "spice", "cream", "toast", "juice",
    "blend", "tiger", "eagle", "shark", "whale", "raven", "panda", "koala",
    "otter", "horse", "zebra", "cobra", "viper", "wolf", "vibe", "aura",
    "echo", "wave", "flow", "flux", "drift", "glide", "orbit", "chaos",
    "order", "unity", "merge", "fuse", "link",
)

TECH_WORDS = (
    "bytes", "codes", "nodes", "ports", "hosts", "links", "route", "proxy",
    "cache", "query", "index", "parse", "async", "batch", "queue", "stack",
    "graph", "trees", "loops", "array", "types", "class", "trait", "state",
    "event", "hooks", "props", "store", "redux", "react", "swift", "rusty",
    "cargo", "crate", "build", "debug", "tests", "bench", "specs", "docs",
)

BRANDABLE_WORDS = (
    "unify", "amply", "apply", "imply", "rally", "tally", "jolly", "folly",
    "truly", "newly", "daily", "early", "maker", "baker", "taker", "giver",
    "rider", "timer", "miner", "liner", "zippy", "happy", "peppy", "fuzzy",
    "dizzy", "fizzy", "jazzy", "buzzy", "muddy", "buddy", "bunny", "funny",
    "sunny", "bingo", "mango", "tango", "tempo", "turbo", "jumbo", "combo",
    "promo",
)

PREFIXES_2 = (
    "go", "my", "we", "be", "do", "up", "on", "in", "to", "so", "ai", "io",
    "ex", "re", "co", "un", "de", "bi", "hi", "ok",
)

PREFIXES_1 = (
    "i", "e", "u", "x", "z", "o", "a", "n", "v", "k",
)

ROOTS_4 = (
    "fish", "bird", "wolf", "bear", "lion", "duck", "deer", "frog", "hawk",
    "crab", "leaf", "tree", "rain", "snow", "wind", "wave", "moon", "star",
    "sand", "rock", "code", "data", "byte", "link", "node", "port", "sync",
    "ping", "scan", "hash", "blog", "wiki", "mail", "chat", "call", "text",
    "send", "load", "save", "edit", "file", "disk", "chip", "wire", "tech",
    "soft", "apps", "game", "play", "tune", "shop", "mart", "bank", "cash",
    "coin", "gold", "sale", "deal", "work", "task", "desk", "book", "note",
    "docs", "form", "plan", "goal", "team", "club", "crew", "life", "live",
    "love", "care", "mind", "soul", "body", "yoga", "chef", "food", "ride",
    "trip", "tour", "path", "road", "maps", "zone", "land", "city", "town",
    "jump", "rush", "dash", "bolt", "zoom", "spin", "flip", "turn", "push",
    "pull", "snap", "grab", "pick", "drop", "kick", "bump", "slam", "bang",
    "boom", "blast", "cool", "warm", "fast", "slim", "safe", "pure",
    "easy", "flex", "next", "peak", "mega", "uber", "mini", "maxi", "plus",
    "zero", "full", "free", "true", "real",
)

SUFFIXES = (
    "ly", "fy", "io", "ai", "go", "up", "it", "er", "ed", "en", "oo", "ee",
    "ia", "us", "ix", "ox", "ax", "ex", "uz", "az",
)

ROOTS_3 = (
    "app", "bot", "box", "buy", "car", "dev", "doc", "eye", "fit", "fly",
    "get", "hub", "job", "key", "lab", "map", "net", "pay", "pet", "pod",
    "run", "set", "sky", "spy", "tag", "tap", "top", "try", "van", "vet",
    "web", "win", "wow", "zen", "zip", "zoo", "ace", "aid", "aim", "air",
    "art", "ask", "bay", "bed", "bet", "big", "bit", "biz", "bus", "cab",
    "cam", "cap", "cut", "day", "dig", "dip", "dog", "dot", "dry", "duo",
    "eat", "eco", "ego", "end", "era", "fan", "fax", "fee", "few", "fin",
    "fix", "flo", "fun", "gap", "gas", "gem", "geo", "gig", "gym", "hat",
    "hex", "hit", "hot", "ice", "ink", "ion", "jam", "jet", "joy", "kit",
    "law", "led", "let", "lid", "lip", "log", "lot", "low", "lux", "max",
    "med", "met", "mid", "min", "mix", "mob", "mod", "nav", "neo", "new",
    "nex", "now", "nut", "oak", "odd", "oil", "old", "one", "opt", "orb",
    "ore", "owl", "own", "pad", "pan", "pax", "pen", "pie", "pin", "pit",
    "pix", "ply", "pop", "pot", "pro", "pry", "pub", "rad", "ram", "raw",
    "ray", "red", "rep", "rev", "rig", "rim", "rip", "rob", "rod", "row",
    "rub", "rug", "sap", "sat", "saw", "sea", "sim", "sip", "sit", "six",
    "sol", "spa", "sub", "sum", "sun", "syn", "tab", "tan", "tax", "tea",
    "tek", "ten", "tex", "tie", "tin", "tip", "ton", "too", "tot", "tow",
    "toy", "tri", "tub", "tux", "two", "uno", "urb", "use", "vat", "via",
    "vid", "vim", "vip", "viz", "vol", "vox", "war", "wax", "way", "wed",
    "wet", "wig", "wit", "wiz", "wok", "won", "yak", "yam", "yes", "yet",
    "yin", "you", "zap", "zig", "zit",
)

# Reduced sets for the pronounceable expansion of the 5-letter list.
CORE_CONSONANTS = "bcdfghlmnprstw"
CORE_VOWELS = "aeio"


def _combinations() -> list[str]:
    words = [p + r for p in PREFIXES_2 for r in ROOTS_3]
    words += [r + s for r in ROOTS_3 for s in SUFFIXES]
    words += [p + r for p in PREFIXES_1 for r in ROOTS_4]
    return words


def _pronounceable_five() -> list[str]:
    """CVCVC and VCVCV names over the reduced consonant/vowel sets."""
    c, v = CORE_CONSONANTS, CORE_VOWELS
    cvcvc = [a + b + d + e + f for a in c for b in v for d in c for e in v for f in c]
    vcvcv = [a + b + d + e + f for a in v for b in c for d in v for e in c for f in v]
    return cvcvc + vcvcv


def build_dictionary(length: int) -> list[str]:
    """Return the embedded dictionary for `length`: deduplicated, sorted, lowercase ASCII."""
    words = [
        *COMMON_WORDS,
        *TECH_WORDS,
        *BRANDABLE_WORDS,
        *ROOTS_4,
        *ROOTS_3,
        *_combinations(),
    ]
    if length == 5:
        words += _pronounceable_five()
    return normalize_words(words, length)


def normalize_words(words, length: int) -> list[str]:
    """Filter to `length`-letter a-z words, then deduplicate and sort."""
    kept = {w.strip().lower() for w in words}
    return sorted(w for w in kept if len(w) == length and w.isascii() and w.isalpha())


def wordlist_digest(words: list[str]) -> str:
    """Short stable fingerprint of a normalized word list."""
    return hashlib.sha256("\n".join(words).encode()).hexdigest()[:16]
