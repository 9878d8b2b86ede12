from enum import Enum

class IssueType(str, Enum):
    spell = "spell"
    grammar = "grammar"
    clarity = "clarity"
    structure = "structure"
