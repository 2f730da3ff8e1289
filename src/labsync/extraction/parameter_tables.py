# ============================================================================
# src/labsync/extraction/parameter_tables.py
# ============================================================================
"""
Lab Parameter Tables
- Canonical parameter names per report type
- Label patterns (abbreviations, spelled-out names, common variants)
- Unit patterns per parameter
- Expected parameter sets used for placeholder filling
- Abbreviation lookup for multi-column tables

Label patterns are regex fragments matched case-insensitively. They are
wrapped so a label never starts in the middle of a word or right after
'/' or '-' ("Non-HDL" is not "HDL", "Albumin/Globulin" is not "Globulin").
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple

from ..constants.report_types import ReportType

# Whole numeric token: "12.5.3" is captured entire so it can be rejected as
# unparseable instead of being read as 12.5
VALUE_TOKEN = r'\d+(?:\.\d+)*(?!\.?\d)'

# Cell counts: 7.5 K/uL, 4.8 x10^12/L, 250 10^3/uL
COUNT_UNITS = r'x\s?10\^\d+/\w+|\*10\^\d+/\w+|10\^\d+/\w+|k/\w+|m/\w+|\d+/\w+|\w+/\w+'
DIFFERENTIAL_UNITS = r'%|percent|' + COUNT_UNITS
LIPID_UNITS = r'mg/\w+|mmol/\w+'
ELECTROLYTE_UNITS = r'mmol/\w+|meq/\w+'
ENZYME_UNITS = r'u/\w+|iu/\w+'
PROTEIN_UNITS = r'g/\w+'
THYROID_HORMONE_UNITS = r'ng/\w+|pg/\w+|pmol/\w+|nmol/\w+|mcg/\w+|ug/\w+'
ANTIBODY_UNITS = r'iu/\w+|u/\w+'
GENERIC_UNITS = r'[a-zA-Zμµ%]+(?:/[\w.]+)*'

_LABEL_PREFIX = r'(?<![\w/-])'
_LABEL_SUFFIX = r'(?![\w])'


@dataclass
class ParameterDefinition:
    """One known lab parameter and how to find it in free text."""
    name: str
    aliases: str
    unit_pattern: str = GENERIC_UNITS
    default_unit: str = ""
    categorical: bool = False

    label_regex: Pattern = field(init=False, repr=False, compare=False)
    value_regex: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        label = f'{_LABEL_PREFIX}(?:{self.aliases}){_LABEL_SUFFIX}'
        if self.categorical:
            value = rf'(?P<value>{VALUE_TOKEN}|[a-z]+)'
        else:
            value = rf'(?P<value>{VALUE_TOKEN})'
        self.label_regex = re.compile(label, re.IGNORECASE)
        self.value_regex = re.compile(
            rf'{label}(?:[ \t]*count)?[ \t]*[:=]?[ \t]*{value}[ \t]*(?P<unit>{self.unit_pattern})?',
            re.IGNORECASE,
        )

    def matches_label(self, label: str) -> bool:
        """True when a captured label names this parameter."""
        return self.label_regex.search(label) is not None

    def is_name_of(self, name: str) -> bool:
        """True when name is this parameter's canonical name or a full alias."""
        stripped = name.strip()
        if stripped.lower() == self.name.lower():
            return True
        return re.fullmatch(
            rf'(?:{self.aliases})(?:\s*count)?', stripped, re.IGNORECASE
        ) is not None


CBC_PARAMETERS: List[ParameterDefinition] = [
    ParameterDefinition(
        'White Blood Cell Count',
        r'wbc|white\s*blood\s*cells?|leukocytes?|white\s*cells?',
        COUNT_UNITS, 'x10^9/L',
    ),
    ParameterDefinition(
        'Red Blood Cell Count',
        r'rbc|red\s*blood\s*cells?|erythrocytes?|red\s*cells?',
        COUNT_UNITS, 'x10^12/L',
    ),
    ParameterDefinition(
        'Hemoglobin',
        r'(?<!corpuscular\s)(?<!cell\s)(?:h[ae]moglobin|hgb|hb)',
        r'g/\w+|g\s*\w+/\w+', 'g/dL',
    ),
    ParameterDefinition('Hematocrit', r'hematocrit|haematocrit|hct|pcv|pvf', r'%|percent', '%'),
    ParameterDefinition(
        'Platelet Count',
        r'platelets?|plt|thrombocytes?',
        COUNT_UNITS, 'x10^9/L',
    ),
    ParameterDefinition(
        'Mean Corpuscular Volume',
        r'mcv|mean\s*corpuscular\s*volume|mean\s*cell\s*volume',
        r'fl|femtoliters?', 'fL',
    ),
    ParameterDefinition(
        'Mean Corpuscular Hemoglobin',
        r'mch|mean\s*(?:corpuscular|cell)\s*h[ae]moglobin(?!\s*concentration)',
        r'pg|picograms?', 'pg',
    ),
    ParameterDefinition(
        'Mean Corpuscular Hemoglobin Concentration',
        r'mchc|mean\s*(?:corpuscular|cell)\s*h[ae]moglobin\s*concentration',
        r'g/\w+|%|percent', 'g/dL',
    ),
    ParameterDefinition('Neutrophils', r'neutrophils?|neut|neutro|polys?|pmns?', DIFFERENTIAL_UNITS, '%'),
    ParameterDefinition('Lymphocytes', r'lymphocytes?|lymphs?', DIFFERENTIAL_UNITS, '%'),
    ParameterDefinition('Monocytes', r'monocytes?|monos?', DIFFERENTIAL_UNITS, '%'),
    ParameterDefinition('Eosinophils', r'eosinophils?|eos', DIFFERENTIAL_UNITS, '%'),
    ParameterDefinition('Basophils', r'basophils?|basos?', DIFFERENTIAL_UNITS, '%'),
]

LIPID_PARAMETERS: List[ParameterDefinition] = [
    ParameterDefinition(
        'Total Cholesterol',
        r'total\s*cholesterol|cholesterol,?\s*total|(?<!hdl\s)(?<!ldl\s)(?<!hdl-)(?<!ldl-)cholesterol(?!\s*/)',
        LIPID_UNITS, 'mg/dL',
    ),
    ParameterDefinition(
        'HDL Cholesterol',
        r'(?:hdl(?:-c)?|high\s*density\s*lipoprotein)(?:\s*cholesterol)?(?!\s*ratio)',
        LIPID_UNITS, 'mg/dL',
    ),
    ParameterDefinition(
        'LDL Cholesterol',
        r'(?:ldl(?:-c)?|low\s*density\s*lipoprotein)(?:\s*cholesterol)?',
        LIPID_UNITS, 'mg/dL',
    ),
    ParameterDefinition('Triglycerides', r'triglycerides?|trig|tg', LIPID_UNITS, 'mg/dL'),
    ParameterDefinition(
        'Non-HDL Cholesterol',
        r'non-?\s*hdl(?:\s*cholesterol)?',
        LIPID_UNITS, 'mg/dL',
    ),
    ParameterDefinition(
        'Cholesterol/HDL Ratio',
        r'(?:cholesterol|chol|total)\s*/\s*hdl(?:\s*ratio)?',
        r'ratio', '',
    ),
]

METABOLIC_PARAMETERS: List[ParameterDefinition] = [
    ParameterDefinition('Glucose', r'glucose|gluc|blood\s*sugar', LIPID_UNITS, 'mg/dL'),
    ParameterDefinition('Blood Urea Nitrogen', r'bun|blood\s*urea\s*nitrogen|urea\s*nitrogen', LIPID_UNITS, 'mg/dL'),
    ParameterDefinition('Creatinine', r'creatinine|creat', r'mg/\w+|[μµu]mol/\w+', 'mg/dL'),
    ParameterDefinition(
        'eGFR',
        r'egfr|estimated\s*(?:glomerular\s*filtration\s*rate|gfr)',
        r'ml/min(?:/[\w.]+)?', 'mL/min/1.73m2',
    ),
    ParameterDefinition('Sodium', r'sodium|na', ELECTROLYTE_UNITS, 'mmol/L'),
    ParameterDefinition('Potassium', r'potassium|k', ELECTROLYTE_UNITS, 'mmol/L'),
    ParameterDefinition('Chloride', r'chloride|cl', ELECTROLYTE_UNITS, 'mmol/L'),
    ParameterDefinition('Carbon Dioxide', r'carbon\s*dioxide|co2|bicarbonate|hco3', ELECTROLYTE_UNITS, 'mmol/L'),
    ParameterDefinition('Calcium', r'calcium|ca', LIPID_UNITS, 'mg/dL'),
    ParameterDefinition('Protein, Total', r'total\s*protein|protein,?\s*total', PROTEIN_UNITS, 'g/dL'),
    ParameterDefinition('Albumin', r'albumin|alb', PROTEIN_UNITS, 'g/dL'),
    ParameterDefinition('Globulin', r'globulin|glob', PROTEIN_UNITS, 'g/dL'),
    ParameterDefinition(
        'Albumin/Globulin Ratio',
        r'(?:albumin\s*/\s*globulin|a\s*/\s*g)(?:\s*ratio)?',
        r'ratio', '',
    ),
    ParameterDefinition(
        'Bilirubin, Total',
        r'total\s*bilirubin|bilirubin,?\s*total|t\.?\s*bili',
        r'mg/\w+|[μµu]mol/\w+', 'mg/dL',
    ),
    ParameterDefinition(
        'Alkaline Phosphatase',
        r'alkaline\s*phosphatase|alk\s*phos|alp',
        ENZYME_UNITS, 'U/L',
    ),
    ParameterDefinition(
        'AST',
        r'ast|aspartate\s*(?:aminotransferase|transaminase)|sgot',
        ENZYME_UNITS, 'U/L',
    ),
    ParameterDefinition(
        'ALT',
        r'alt|alanine\s*(?:aminotransferase|transaminase)|sgpt',
        ENZYME_UNITS, 'U/L',
    ),
]

URINALYSIS_PARAMETERS: List[ParameterDefinition] = [
    ParameterDefinition('Color', r'colou?r', categorical=True),
    ParameterDefinition('Appearance', r'appearance|clarity', categorical=True),
    ParameterDefinition('Specific Gravity', r'specific\s*gravity|sp\.?\s*gr\.?', categorical=True),
    ParameterDefinition('pH', r'ph', categorical=True),
    ParameterDefinition('Protein', r'protein', r'mg/\w+', categorical=True),
    ParameterDefinition('Glucose', r'glucose', r'mg/\w+', categorical=True),
    ParameterDefinition('Ketones', r'ketones?', r'mg/\w+', categorical=True),
    ParameterDefinition('Blood', r'(?<!red\s)(?<!white\s)blood', categorical=True),
    ParameterDefinition('Bilirubin', r'bilirubin', categorical=True),
    ParameterDefinition('Urobilinogen', r'urobilinogen', r'mg/\w+|eu/\w+', categorical=True),
    ParameterDefinition('Nitrite', r'nitrites?', categorical=True),
    ParameterDefinition('Leukocyte Esterase', r'leukocyte\s*esterase|leukocytes', categorical=True),
    ParameterDefinition('WBC', r'wbc|white\s*blood\s*cells?', r'/hpf', categorical=True),
    ParameterDefinition('RBC', r'rbc|red\s*blood\s*cells?', r'/hpf', categorical=True),
    ParameterDefinition('Epithelial Cells', r'epithelial\s*cells?', r'/hpf|/lpf', categorical=True),
    ParameterDefinition('Bacteria', r'bacteria', categorical=True),
    ParameterDefinition('Crystals', r'crystals?', categorical=True),
    ParameterDefinition('Casts', r'casts?', r'/lpf', categorical=True),
]

THYROID_PARAMETERS: List[ParameterDefinition] = [
    ParameterDefinition(
        'TSH',
        r'tsh|thyroid\s*stimulating\s*hormone',
        r'[mμµu]?iu/\w+|mu/\w+', 'mIU/L',
    ),
    ParameterDefinition(
        'Free T4',
        r'free\s*t4|ft4|free\s*thyroxine|thyroxine,?\s*free',
        THYROID_HORMONE_UNITS, 'ng/dL',
    ),
    ParameterDefinition(
        'Total T4',
        r'total\s*t4|t4,?\s*total|thyroxine,?\s*total|(?<!free\s)(?<!free)t4|(?<!free\s)thyroxine',
        THYROID_HORMONE_UNITS, 'mcg/dL',
    ),
    ParameterDefinition(
        'Free T3',
        r'free\s*t3|ft3|free\s*triiodothyronine|triiodothyronine,?\s*free',
        THYROID_HORMONE_UNITS, 'pg/mL',
    ),
    ParameterDefinition(
        'Total T3',
        r'total\s*t3|t3,?\s*total|triiodothyronine,?\s*total|(?<!free\s)(?<!free)t3|(?<!free\s)triiodothyronine',
        THYROID_HORMONE_UNITS, 'ng/dL',
    ),
    ParameterDefinition(
        'Thyroid Peroxidase Antibodies',
        r'thyroid\s*peroxidase\s*(?:antibodies|antibody|ab)|tpo\s*(?:antibodies|antibody|ab)|anti-tpo',
        ANTIBODY_UNITS, 'IU/mL',
    ),
    ParameterDefinition(
        'Thyroglobulin Antibodies',
        r'thyroglobulin\s*(?:antibodies|antibody|ab)|tg\s*(?:antibodies|antibody|ab)|anti-tg',
        ANTIBODY_UNITS, 'IU/mL',
    ),
]

PARAMETER_TABLES: Dict[ReportType, List[ParameterDefinition]] = {
    ReportType.CBC: CBC_PARAMETERS,
    ReportType.LIPID_PANEL: LIPID_PARAMETERS,
    ReportType.METABOLIC_PANEL: METABOLIC_PARAMETERS,
    ReportType.URINALYSIS: URINALYSIS_PARAMETERS,
    ReportType.THYROID_PANEL: THYROID_PARAMETERS,
}

# Report types whose output always lists every known parameter
EXPECTED_PARAMETERS: Dict[ReportType, Tuple[str, ...]] = {
    ReportType.CBC: tuple(p.name for p in CBC_PARAMETERS),
    ReportType.LIPID_PANEL: tuple(p.name for p in LIPID_PARAMETERS),
    ReportType.METABOLIC_PANEL: tuple(p.name for p in METABOLIC_PARAMETERS),
}

# Line scanning variants for CBC tables without separators
CBC_NAME_VARIATIONS: Dict[str, Tuple[str, ...]] = {
    'White Blood Cell Count': ('wbc', 'white blood cell', 'leukocyte', 'white cell count'),
    'Red Blood Cell Count': ('rbc', 'red blood cell', 'erythrocyte', 'red cell count'),
    'Hemoglobin': ('hgb', 'hemoglobin', 'haemoglobin'),
    'Hematocrit': ('hct', 'hematocrit', 'pvf'),
    'Mean Corpuscular Volume': ('mcv', 'mean corpuscular volume', 'mean cell volume'),
    'Mean Corpuscular Hemoglobin': ('mch', 'mean corpuscular hemoglobin', 'mean cell hemoglobin'),
    'Mean Corpuscular Hemoglobin Concentration': ('mchc', 'mean corpuscular hemoglobin concentration'),
    'Platelet Count': ('plt', 'platelet', 'thrombocyte'),
    'Neutrophils': ('neutrophil', 'neut', 'poly', 'pmn'),
    'Lymphocytes': ('lymphocyte', 'lymph'),
    'Monocytes': ('monocyte', 'mono'),
    'Eosinophils': ('eosinophil', 'eos'),
    'Basophils': ('basophil', 'baso'),
}

# Column header abbreviation -> canonical name
ABBREVIATION_NAMES: Dict[str, str] = {
    'wbc': 'White Blood Cell Count',
    'rbc': 'Red Blood Cell Count',
    'hgb': 'Hemoglobin',
    'hemoglobin': 'Hemoglobin',
    'hct': 'Hematocrit',
    'hematocrit': 'Hematocrit',
    'plt': 'Platelet Count',
    'platelets': 'Platelet Count',
    'mchc': 'Mean Corpuscular Hemoglobin Concentration',
    'mcv': 'Mean Corpuscular Volume',
    'mch': 'Mean Corpuscular Hemoglobin',
    'neut': 'Neutrophils',
    'lymph': 'Lymphocytes',
    'mono': 'Monocytes',
    'eos': 'Eosinophils',
    'baso': 'Basophils',
    'gluc': 'Glucose',
    'bun': 'Blood Urea Nitrogen',
    'creat': 'Creatinine',
    'na': 'Sodium',
    'k': 'Potassium',
    'cl': 'Chloride',
    'co2': 'Carbon Dioxide',
    'ca': 'Calcium',
    'prot': 'Protein, Total',
    'alb': 'Albumin',
    'glob': 'Globulin',
    'bili': 'Bilirubin, Total',
    'alp': 'Alkaline Phosphatase',
    'ggt': 'Gamma-Glutamyl Transferase',
    'ast': 'AST',
    'alt': 'ALT',
    'chol': 'Total Cholesterol',
    'hdl': 'HDL Cholesterol',
    'ldl': 'LDL Cholesterol',
    'trig': 'Triglycerides',
    'a1c': 'Hemoglobin A1C',
    'tsh': 'Thyroid Stimulating Hormone',
    't4': 'Thyroxine (T4)',
    't3': 'Triiodothyronine (T3)',
}

_HEADER_NAMES = (
    'hemoglobin', 'hematocrit', 'platelets', 'neutrophils', 'lymphocytes',
    'glucose', 'creatinine', 'sodium', 'potassium', 'chloride', 'calcium',
    'cholesterol', 'triglycerides', 'bilirubin', 'protein', 'albumin', 'globulin',
    't4', 't3',
)

# Tokens that mark a line as the header of a multi-column results table.
# One- and two-letter element symbols (k, na, cl, ca) are left out: they
# collide with units such as K/uL and with "NA" for not available.
HEADER_TOKENS: Tuple[str, ...] = tuple(sorted(
    {abbr for abbr in ABBREVIATION_NAMES if len(abbr) >= 3} | set(_HEADER_NAMES),
    key=lambda token: (-len(token), token),
))


def get_parameter_table(report_type: ReportType) -> List[ParameterDefinition]:
    return PARAMETER_TABLES.get(report_type, [])


def full_parameter_name(abbreviation: str) -> str:
    """
    Canonical name for a column header or abbreviation.

    Exact lookups win; otherwise the longest known abbreviation contained in
    the header as a whole word is used; otherwise the header is title-cased.
    """
    key = abbreviation.strip().lower()
    if key in ABBREVIATION_NAMES:
        return ABBREVIATION_NAMES[key]

    for abbr in sorted(ABBREVIATION_NAMES, key=len, reverse=True):
        if re.search(rf'\b{re.escape(abbr)}\b', key):
            return ABBREVIATION_NAMES[abbr]

    return ' '.join(word[:1].upper() + word[1:] for word in key.split())


def find_definition(name: str, report_type: ReportType) -> Optional[ParameterDefinition]:
    """Definition in the report type's table whose canonical name or alias is name."""
    for definition in get_parameter_table(report_type):
        if definition.is_name_of(name):
            return definition
    return None
