"""Product name normalization shared by the ledger and the cross-tenant matcher."""


def normalize_name(name: str) -> str:
    """
    Lookup key for a product name: every whitespace character removed, casefolded.

    Examples:
        "Dolo 650"    -> "dolo650"
        "DOLO  650 "  -> "dolo650"
        "Dolo-650"    -> "dolo-650"  (punctuation is significant)
    """
    if not name:
        return ""
    return "".join(name.split()).casefold()
