"""Common pyparsing grammar patterns."""

from pyparsing import printables
from pyparsing import Group, Optional, Regex, StringEnd, Suppress, Word, ZeroOrMore
from pyparsing import ParseException
import re

from multiphase.core.errors import InvalidInputError

# matching float w/ regex is ugly but is recommended by pyparsing
regex_after_decimal = r'([0-9]*\.?[0-9]+([eE][-+]?[0-9]+)?)'
float_number = Regex(r'[-+]?([0-9]+\.(?!([0-9]|[eE])))|[-+]?{0}'.format(regex_after_decimal)) \
    .setParseAction(lambda t: [float(t[0])])

# Species names may contain anything but the separators, e.g. 'H2O(L)' or 'OH-'
species_name = Word(printables, excludeChars=':,')
composition_entry = Group(species_name + Suppress(':') + float_number)
composition_map = composition_entry + ZeroOrMore(Optional(Suppress(',')) + composition_entry) + StringEnd()

reg_symbol = r'([A-Z][a-z]?)'
reg_amount = r'([0-9]+\.?[0-9]*|\.[0-9]+)?'
chem_regex = reg_symbol + reg_amount
# Either '/+2' or a run of trailing signs, as in 'SO4--'
reg_charge = r'(?:/([+-]?[0-9]+)|([+-]+))$'
# State labels, as in 'H2O(L)' or 'C(gr)'
reg_suffix = r'\([^()]*\)$'

ELEMENT_SYMBOLS = frozenset("""
H He Li Be B C N O F Ne Na Mg Al Si P S Cl Ar K Ca Sc Ti V Cr Mn Fe Co Ni Cu Zn Ga Ge As Se Br Kr
Rb Sr Y Zr Nb Mo Tc Ru Rh Pd Ag Cd In Sn Sb Te I Xe Cs Ba La Ce Pr Nd Pm Sm Eu Gd Tb Dy Ho Er Tm
Yb Lu Hf Ta W Re Os Ir Pt Au Hg Tl Pb Bi Po At Rn Fr Ra Ac Th Pa U Np Pu Am Cm Bk Cf Es Fm Md No
Lr Rf Db Sg Bh Hs Mt Ds Rg Cn Nh Fl Mc Lv Ts Og
""".split())


def parse_chemical_formula(formula):
    """
    Split a chemical formula into element amounts and a charge.

    Element symbols are case sensitive: an upper case letter optionally
    followed by a lower case one, naming an element of the periodic table.
    The charge follows a slash, as in 'OH/-1', or is given by trailing
    signs, as in 'Cl-' or 'SO4--'. Trailing state labels such as '(L)' or
    '(gr)' are ignored.

    Parameters
    ----------
    formula : str

    Returns
    -------
    tuple of (list of (element, amount), charge)

    Raises
    ------
    InvalidInputError
        If the formula contains anything but element symbols, amounts, a
        charge and state labels.

    Examples
    --------
    >>> parse_chemical_formula('CH4')
    ([('C', 1.0), ('H', 4.0)], 0)
    >>> parse_chemical_formula('Na+')
    ([('Na', 1.0)], 1)
    """
    body = formula.strip()
    while re.search(reg_suffix, body):
        body = re.sub(reg_suffix, '', body).rstrip()
    charge = 0
    match = re.search(reg_charge, body)
    if match is not None:
        slash, signs = match.groups()
        if slash is not None:
            charge = int(slash)
        else:
            charge = signs.count('+') - signs.count('-')
        body = body[:match.start()]
    if body == '' or re.fullmatch('(?:{})+'.format(chem_regex), body) is None:
        raise InvalidInputError('Cannot parse chemical formula {!r}'.format(formula))
    sym_amnts = []
    for symbol, amount in re.findall(chem_regex, body):
        if symbol not in ELEMENT_SYMBOLS:
            raise InvalidInputError('Unknown element {!r} in formula {!r} (symbols are case sensitive)'
                                    .format(symbol, formula))
        sym_amnts.append((symbol, float(amount) if amount != '' else 1.0))
    return (sym_amnts, charge)


def parse_composition(text):
    """
    Parse a composition string such as 'CH4:1, O2:2' into a dict.

    Entries may be separated by commas and/or whitespace. Amounts must be
    non-negative and each species may only appear once.

    Parameters
    ----------
    text : str

    Returns
    -------
    dict of {str: float}

    Raises
    ------
    InvalidInputError
        If the string cannot be parsed.
    """
    if text.strip() == '':
        return {}
    try:
        entries = composition_map.parseString(text.strip(), parseAll=True)
    except ParseException as e:
        raise InvalidInputError('Malformed composition string {!r}: {}'.format(text, e)) from e
    result = {}
    for name, amount in entries:
        if name in result:
            raise InvalidInputError('Species {!r} appears more than once in {!r}'.format(name, text))
        if amount < 0:
            raise InvalidInputError('Negative amount for species {!r}'.format(name))
        result[name] = amount
    return result
