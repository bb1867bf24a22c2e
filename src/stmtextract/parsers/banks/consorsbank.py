"""Consorsbank statement extractor.

Document families:
- KAUF / BEZUG: buys and subscriptions
- VERKAUF / VERK. TEIL-/BEZUGSR.: sells
- DIVIDENDENGUTSCHRIFT / ERTRAGSGUTSCHRIFT: dividends, pre Q4 2017 layout
- Dividendengutschrift / Ertragsgutschrift: dividends, current layout
- Nachträgliche Verlustverrechnung: tax adjustments
- Vorabpauschale: advance lump-sum taxation of funds

Foreign-currency documents store the rate converting the foreign currency
into the account currency in the document context under ``exchangeRate``,
so tax lines printed in the foreign currency can be converted later on.
"""

import logging

from stmtextract.core.currency import Rounding, convert, convert_inverse, inverse_rate
from stmtextract.core.exceptions import MissingFieldError
from stmtextract.core.models import (
    AccountEntry,
    AccountEntryType,
    PortfolioTransactionType,
    TransferEntry,
)
from stmtextract.core.money import Money, Unit, UnitType
from stmtextract.parsers.base import BaseExtractor
from stmtextract.parsers.builder import (
    TransactionBuilder,
    non_zero_or_skip,
    wrap_transaction,
    wrap_transfer,
)
from stmtextract.parsers.converters import (
    as_amount,
    as_currency_code,
    as_date,
    as_exchange_rate,
    as_shares,
)
from stmtextract.parsers.document import Block, DocumentType
from stmtextract.parsers.items import NonImportableItem, TransactionItem

logger = logging.getLogger(__name__)

EXCHANGE_RATE = "exchangeRate"

_CHARGE = (
    r"^.*(?P<charge>B.rsenplatzgeb.hr|Provision|Handelsentgelt|Transaktionsentgelt|Grundgeb.hr"
    r"|Eig\. Spesen|Franzoesische Finanztransaktionssteuer [\d,]+%|Consorsbank Ausgabegeb.hr [\d,]+%)"
    r" (?:(?P<charge_currency>[A-Z]{3}) )?(?P<fee>[\d.]+(,\d{2})?)(?: (?P<charge_currency_after>[A-Z]{3}))?$"
)

_BUY_FOREX = (
    r"^umger\. zum Devisenkurs *(?P<forex>[A-Z]{3}) *(?P<exchange_rate>[\d.]+,\d+)"
    r" *(?P<gross_currency>[A-Z]{3}) *(?P<gross>[\d.]+,\d+) *$"
)


class ConsorsbankExtractor(BaseExtractor):
    """Consorsbank (formerly Cortal Consors) securities statements."""

    def __init__(self, security_resolver=None):
        super().__init__(security_resolver)

        self.add_bank_identifier("Consorsbank")
        self.add_bank_identifier("Cortal Consors")

        self._add_buy_transaction()
        self._add_preemptive_buy_transaction()
        self._add_sell_transaction()
        self._add_dividend_transaction()
        self._add_tax_adjustment_transaction()
        self._add_vorabpauschale_transaction()

        # documents since Q4 2017 look different
        self._add_new_dividend_transaction()

    def get_label(self) -> str:
        return "Consorsbank"

    # -------------------------------------------------------------------------
    # Buy / sell
    # -------------------------------------------------------------------------

    def _security_section(self, builder: TransactionBuilder) -> TransactionBuilder:
        return (builder
                .section("wkn", "isin", "name", "currency", "shares")
                .find(r"^(Wertpapier|Bezeichnung) WKN ISIN$")
                .match(r"^(?P<name>.*) (?P<wkn>[^ ]*) (?P<isin>[^ ]*)$")
                .find(r"^Einheit Umsatz( F\Dlligkeit)?$")
                .match(r"^ST (?P<shares>[\d.]+(,\d+)?).*$")
                .match(r"^(Kurs|Preis pro Anteil) ([\d.]+,\d+) (?P<currency>[A-Z]{3}).*$")
                .assign(lambda t, v: t.update(security=self.get_or_create_security(v),
                                              shares=as_shares(v["shares"]))))

    def _charges_section(self, builder: TransactionBuilder) -> TransactionBuilder:
        return (builder
                .section("charge", "fee").multiple_times()
                .match(_CHARGE)
                .assign(self._add_charge))

    def _add_buy_transaction(self):
        doc_type = self.add_document_type(DocumentType("KAUF", name="Consorsbank Kauf"))
        block = doc_type.add_block(Block(r"^KAUF AM .*$"))

        builder = (TransactionBuilder()
                   .subject(lambda: TransferEntry(PortfolioTransactionType.BUY))

                   .section("date", "time")
                   .match(r"^KAUF AM (?P<date>\d+\.\d+\.\d{4})\s+UM (?P<time>\d+:\d+):\d+.*$")
                   .assign(lambda t, v: t.update(date_time=as_date(v["date"], v["time"]))))

        self._security_section(builder)

        # the conversion line is printed among the charges or after the total
        (builder
         .section().multiple_times()
         .match(f"(?:{_CHARGE}|{_BUY_FOREX})")
         .assign(self._add_charge_or_forex))

        (builder
         .one_of(
             lambda s: s.attributes("amount", "currency")
             .match(r"^Wert \d+\.\d+\.\d{4} (?P<currency>[A-Z]{3}) (?P<amount>[\d.]+,\d+)$")
             .assign(self._set_amount),
             lambda s: s.attributes("amount", "currency")
             .match(r"^zulasten Konto-Nr\. \d+ (?P<amount>[\d.]+,\d+) (?P<currency>[A-Z]{3})$")
             .assign(self._set_amount))

         .section("forex", "exchange_rate", "gross_currency", "gross").optional()
         .match(_BUY_FOREX)
         .assign(self._set_buy_forex)

         .wrap(wrap_transfer))

        block.set(builder)

    def _add_preemptive_buy_transaction(self):
        doc_type = self.add_document_type(DocumentType("BEZUG", name="Consorsbank Bezug"))
        block = doc_type.add_block(Block(r"^BEZUG AM .*$"))

        builder = TransactionBuilder().subject(lambda: TransferEntry(PortfolioTransactionType.BUY))
        self._security_section(builder)
        self._charges_section(builder)

        (builder
         .section("date", "amount", "currency")
         .match(r"^Wert (?P<date>\d+\.\d+\.\d{4}) (?P<currency>[A-Z]{3}) (?P<amount>[\d.]+,\d+)$")
         .assign(self._set_subscription)

         .wrap(wrap_transfer))

        block.set(builder)

    def _add_sell_transaction(self):
        doc_type = self.add_document_type(
            DocumentType(r"(VERKAUF|VERK\. TEIL-/BEZUGSR)", name="Consorsbank Verkauf"))
        block = doc_type.add_block(Block(r"^(VERKAUF|VERK\. TEIL-/BEZUGSR\.) AM .*$"))

        builder = (TransactionBuilder()
                   .subject(lambda: TransferEntry(PortfolioTransactionType.SELL))

                   .one_of(
                       lambda s: s.attributes("date")
                       .match(r"^VERK\. TEIL-/BEZUGSR\. AM (?P<date>\d{2}\.\d{2}\.\d{4}) .*$")
                       .assign(lambda t, v: t.update(date_time=as_date(v["date"]))),
                       lambda s: s.attributes("date", "time")
                       .match(r"^VERKAUF AM (?P<date>\d{2}\.\d{2}\.\d{4}) *UM (?P<time>\d{2}:\d{2}:\d{2}) .*$")
                       .assign(lambda t, v: t.update(date_time=as_date(v["date"], v["time"])))))

        self._security_section(builder)
        self._charges_section(builder)
        self._taxes_sections(builder)

        (builder
         .one_of(
             lambda s: s.attributes("amount", "currency")
             .match(r"^Wert \d+\.\d+\.\d{4} (?P<currency>[A-Z]{3}) (?P<amount>[\d.]+,\d+)$")
             .assign(self._set_amount),
             lambda s: s.attributes("amount", "currency")
             .match(r"^zugunsten Konto-Nr\. \d+ (?P<amount>[\d.]+,\d+) (?P<currency>[A-Z]{3})$")
             .assign(self._set_amount))

         .wrap(wrap_transfer))

        block.set(builder)

    # -------------------------------------------------------------------------
    # Dividends
    # -------------------------------------------------------------------------

    def _add_dividend_transaction(self):
        doc_type = self.add_document_type(
            DocumentType("(DIVIDENDENGUTSCHRIFT|ERTRAGSGUTSCHRIFT)", name="Consorsbank Dividende (alt)"))
        block = doc_type.add_block(Block(r"^(DIVIDENDENGUTSCHRIFT|ERTRAGSGUTSCHRIFT).*$"))

        block.set(TransactionBuilder()
                  .subject(lambda: AccountEntry(type=AccountEntryType.DIVIDENDS))

                  .section("wkn", "name", "shares")
                  .match(r"^ST *(?P<shares>[\d.]+(,\d+)?) *WKN: *(?P<wkn>\S*) *$")
                  .match(r"^(?P<name>.*)$")
                  .assign(lambda t, v: t.update(shares=as_shares(v["shares"])))

                  # the security is created here to reuse the gross currency
                  .section("amount", "currency", "wkn", "name")
                  .match(r"^BRUTTO *(?P<currency>[A-Z]{3}) *(?P<amount>[\d.]+,\d+) *$")
                  .assign(self._set_dividend_gross)

                  .section("rate", "account_currency", "account_amount").optional()
                  .match(r"^UMGER\.ZUM DEV\.-KURS *(?P<rate>[\d.]+,\d+) *(?P<account_currency>[A-Z]{3})"
                         r" *(?P<account_amount>[\d.]+,\d+) *$")
                  .assign(self._convert_dividend)

                  .section("qust", "qust_currency", "forex_currency", "forex").optional()
                  .match(r"^QUST [\d.]+,\d+ *% *(?P<qust_currency>[A-Z]{3}) *(?P<qust>[\d.]+,\d+)"
                         r" *(?P<forex_currency>[A-Z]{3}) *(?P<forex>[\d.]+,\d+) *$")
                  .assign(self._add_withholding_tax)

                  .section("kapst", "tax_currency").multiple_times()
                  .match(r"^KAPST .*(?P<tax_currency>[A-Z]{3}) *(?P<kapst>[\d.]+,\d+) *$")
                  .assign(lambda t, v: t.add_unit(
                      Unit(UnitType.TAX, Money.of(as_currency_code(v["tax_currency"]), as_amount(v["kapst"])))))

                  .section("solz", "tax_currency").multiple_times()
                  .match(r"^SOLZ .*(?P<tax_currency>[A-Z]{3}) *(?P<solz>[\d.]+,\d+) *$")
                  .assign(self._add_solidarity_surcharge)

                  .section("expenses_currency", "expenses").optional()
                  .match(r"^FREMDE SPESEN *(?P<expenses_currency>[A-Z]{3}) *(?P<expenses>[\d.]+,\d+) *$")
                  .assign(self._add_foreign_expenses)

                  .section("date")
                  .match(r"^WERT (?P<date>\d+\.\d+\.\d{4})(?: *(?P<net_currency>[A-Z]{3}) *(?P<net>[\d.]+,\d+))?.*$")
                  .assign(self._set_value_date)

                  .wrap(non_zero_or_skip(wrap_transaction, "Dividende mit 0 Euro")))

    def _add_new_dividend_transaction(self):
        doc_type = self.add_document_type(
            DocumentType("(Dividendengutschrift|Ertragsgutschrift)", name="Consorsbank Dividende"))
        block = doc_type.add_block(Block(r"^(Dividendengutschrift|Ertragsgutschrift).*$"))

        builder = (TransactionBuilder()
                   .subject(lambda: AccountEntry(type=AccountEntryType.DIVIDENDS))

                   .section("name", "wkn", "isin", "currency")
                   .find(r"^Wertpapierbezeichnung WKN ISIN$")
                   .match(r"^(?P<name>.*) (?P<wkn>[^ ]*) (?P<isin>[^ ]*)$")
                   .match(r"^.*(Dividende pro St.ck|Ertragsaussch.ttung je Anteil) ([\d.]+,\d+) (?P<currency>[A-Z]{3}).*$")
                   .assign(lambda t, v: t.update(security=self.get_or_create_security(v)))

                   .section("shares")
                   .match(r"^(?P<shares>[\d.]+(,\d+)?) St.ck$")
                   .assign(lambda t, v: t.update(shares=as_shares(v["shares"])))

                   .section("date")
                   .match(r"^Valuta (?P<date>\d+\.\d+\.\d{4}).*$")
                   .assign(lambda t, v: t.update(date_time=as_date(v["date"])))

                   .section("fx_amount", "fx_currency", "exchange_rate", "gross", "gross_currency").optional()
                   .match(r"^Brutto in [A-Z]{3} (?P<fx_amount>[\d.]+,\d+) (?P<fx_currency>[A-Z]{3})$")
                   .match(r"^Devisenkurs (?P<exchange_rate>[\d.]+,\d+) [A-Z]{3} / [A-Z]{3}$")
                   .match(r"^Brutto in [A-Z]{3} (?P<gross>[\d.]+,\d+) (?P<gross_currency>[A-Z]{3})$")
                   .assign(self._set_dividend_gross_value))

        self._taxes_sections(builder)

        (builder
         .section("amount", "currency")
         .match(r"^Netto.* zugunsten IBAN (.*) (?P<amount>[\d.]+,\d+) (?P<currency>[A-Z]{3})$")
         .assign(self._set_amount)

         .wrap(non_zero_or_skip(wrap_transaction, "Dividende mit 0 Euro")))

        block.set(builder)

    def _taxes_sections(self, builder: TransactionBuilder) -> TransactionBuilder:
        return (builder
                .section("tax", "tax_currency").multiple_times()
                .match(r"^(KAPST|SOLZ|KIST) .*(?P<tax_currency>[A-Z]{3}) *(?P<tax>[\d.]+,\d+) *$")
                .assign(self._add_tax)

                .section("tax", "tax_currency").optional()
                .match(r"^abzgl\. Quellensteuer .* [A-Z]{3} (?P<tax>[\d.]+,\d+) (?P<tax_currency>[A-Z]{3})$")
                .assign(self._add_tax)

                .section("tax", "tax_currency").multiple_times()
                .match(r"^abzgl\. (Kapitalertrags?teuer|Solidarit.tszuschlag|Kirchensteuer)"
                       r".* (?P<tax>[\d.]+,\d{2}) (?P<tax_currency>[A-Z]{3})$")
                .assign(self._add_tax))

    # -------------------------------------------------------------------------
    # Taxes
    # -------------------------------------------------------------------------

    def _add_tax_adjustment_transaction(self):
        doc_type = self.add_document_type(
            DocumentType("Nachtr.gliche Verlustverrechnung", name="Consorsbank Steuerausgleich"))
        block = doc_type.add_block(Block(r"^ *Erstattung/Belastung \(-\) von Steuern *$"))

        # Erstattung/Belastung (-) von Steuern
        # Anteil                             100,00%
        # KapSt Person 1                                 :                79,89
        # SolZ  Person 1                                 :                 4,36
        # ======================================================================
        #                                                                 84,25
        block.set(TransactionBuilder()
                  # the currency is printed nowhere on the document
                  .subject(lambda: AccountEntry(type=AccountEntryType.TAX_REFUND, currency_code="EUR"))

                  .section("amount", "sign")
                  .find(r"^ *Erstattung/Belastung \(-\) von Steuern *$")
                  .find(r"^ *=+ *$")
                  .match(r"^ *(?P<amount>[\d.]+,\d{2})(?P<sign>-?).*$")
                  .assign(self._set_tax_adjustment_amount)

                  .section("date").optional()
                  .match(r"^ *Den Steuerausgleich buchen wir mit Wertstellung (?P<date>\d+\.\d+\.\d{4}).*$")
                  .assign(lambda t, v: t.update(date_time=as_date(v["date"])))

                  .wrap(self._wrap_tax_adjustment))

    def _add_vorabpauschale_transaction(self):
        doc_type = self.add_document_type(DocumentType("Vorabpauschale", name="Consorsbank Vorabpauschale"))
        block = doc_type.add_block(Block(r"^Vorabpauschale.*$"))

        block.set(TransactionBuilder()
                  .subject(lambda: AccountEntry(type=AccountEntryType.TAXES))

                  .section("name", "wkn", "isin")
                  .match(r"^Wertpapierbezeichnung WKN ISIN$")
                  .match(r"^(?P<name>.*) (?P<wkn>[^ ]*) (?P<isin>[^ ]*)$")
                  .assign(lambda t, v: t.update(security=self.get_or_create_security(v)))

                  .section("tax", "currency", "date").optional()
                  .match(r"^Netto zulasten .* (?P<tax>[\d.]+,\d+) (?P<currency>[A-Z]{3})$")
                  .match(r"^Valuta (?P<date>\d+\.\d+\.\d{4}).*$")
                  .assign(lambda t, v: t.update(currency_code=as_currency_code(v["currency"]),
                                                amount=as_amount(v["tax"]),
                                                date_time=as_date(v["date"])))

                  .wrap(non_zero_or_skip(wrap_transaction, "Vorabpauschale ohne Steuerbelastung")))

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    @staticmethod
    def _set_amount(t, v):
        t.update(currency_code=as_currency_code(v["currency"]), amount=as_amount(v["amount"]))

    @staticmethod
    def _set_subscription(t, v):
        ConsorsbankExtractor._set_amount(t, v)
        t.update(date_time=as_date(v["date"]))

    @staticmethod
    def _add_charge(t, v):
        currency = v.get("charge_currency") or v.get("charge_currency_after")
        if currency is None:
            currency = t.currency_code or (t.security.currency_code if t.security else None)
        unit_type = UnitType.TAX if v["charge"].startswith("Franzoesische") else UnitType.FEE
        t.add_unit(Unit(unit_type, Money.of(as_currency_code(currency), as_amount(v["fee"]))))

    def _add_charge_or_forex(self, t, v):
        if v.get("forex") is not None:
            self._set_buy_forex(t, v)
        else:
            self._add_charge(t, v)

    @staticmethod
    def _set_buy_forex(t, v):
        """Gross value in account currency, converted back into the security currency."""
        forex_currency = as_currency_code(v["forex"])
        if t.security is None or t.security.currency_code != forex_currency:
            return

        exchange_rate = as_exchange_rate(v["exchange_rate"])
        amount = as_amount(v["gross"])
        fx_amount = convert(amount, exchange_rate, rounding=Rounding.HALF_DOWN)

        t.add_unit(Unit(UnitType.GROSS_VALUE,
                        Money.of(as_currency_code(v["gross_currency"]), amount),
                        Money.of(forex_currency, fx_amount),
                        inverse_rate(exchange_rate, rounding=Rounding.HALF_DOWN)))

    def _set_dividend_gross(self, t, v):
        currency = as_currency_code(v["currency"])
        t.update(currency_code=currency, amount=as_amount(v["amount"]))
        t.update(security=self.get_or_create_security(
            {"wkn": v["wkn"], "name": v["name"], "currency": currency}))

    @staticmethod
    def _convert_dividend(t, v):
        """Replace the foreign BRUTTO with the amount in account currency."""
        foreign_gross = t.monetary_amount
        rate = as_exchange_rate(v["rate"])
        currency = as_currency_code(v["account_currency"])
        forex_to_account = inverse_rate(rate, rounding=Rounding.HALF_DOWN)
        v.document.put_decimal(EXCHANGE_RATE, forex_to_account)

        account_gross = convert_inverse(foreign_gross.amount, rate, rounding=Rounding.HALF_DOWN)
        t.monetary_amount = Money.of(currency, as_amount(v["account_amount"]))

        if t.security is not None and t.currency_code != t.security.currency_code:
            t.add_unit(Unit(UnitType.GROSS_VALUE, Money.of(currency, account_gross),
                            foreign_gross, forex_to_account))

    @staticmethod
    def _add_withholding_tax(t, v):
        money = Money.of(as_currency_code(v["qust_currency"]), as_amount(v["qust"]))
        gross_value = t.get_unit(UnitType.GROSS_VALUE)
        if gross_value is not None:
            forex = Money.of(as_currency_code(v["forex_currency"]), as_amount(v["forex"]))
            t.add_unit(Unit(UnitType.TAX, money, forex, gross_value.exchange_rate))
        else:
            t.add_unit(Unit(UnitType.TAX, money))

    @staticmethod
    def _add_solidarity_surcharge(t, v):
        currency = as_currency_code(v["tax_currency"])
        if currency == t.currency_code:
            t.add_unit(Unit(UnitType.TAX, Money.of(currency, as_amount(v["solz"]))))

    @staticmethod
    def _add_foreign_expenses(t, v):
        forex_amount = as_amount(v["expenses"])
        gross_value = t.get_unit(UnitType.GROSS_VALUE)

        if gross_value is not None:
            rate = gross_value.exchange_rate
            money = Money.of(t.currency_code, convert(forex_amount, rate, rounding=Rounding.HALF_UP))
            forex = Money.of(as_currency_code(v["expenses_currency"]), forex_amount)
            t.add_unit(Unit(UnitType.FEE, money, forex, rate))
            return

        rate = v.document.get_decimal(EXCHANGE_RATE)
        if rate is None:
            t.add_unit(Unit(UnitType.FEE, Money.of(as_currency_code(v["expenses_currency"]), forex_amount)))
        else:
            t.add_unit(Unit(UnitType.FEE, Money.of(t.currency_code,
                                                   convert(forex_amount, rate, rounding=Rounding.HALF_UP))))

    @staticmethod
    def _set_value_date(t, v):
        t.update(date_time=as_date(v["date"]))
        if v.get("net") is not None:
            t.monetary_amount = Money.of(as_currency_code(v["net_currency"]), as_amount(v["net"]))

    @staticmethod
    def _set_dividend_gross_value(t, v):
        """
        Gross value of a foreign dividend.

        Example:
            Brutto in USD 19,50 USD
            Devisenkurs 1,175100 USD / EUR
            Brutto in EUR 16,59 EUR
        """
        fx_amount = Money.of(as_currency_code(v["fx_currency"]), as_amount(v["fx_amount"]))
        gross = Money.of(as_currency_code(v["gross_currency"]), as_amount(v["gross"]))
        if fx_amount.currency_code == gross.currency_code:
            return

        # quoted as foreign units per account currency unit
        forex_to_account = inverse_rate(as_exchange_rate(v["exchange_rate"]), rounding=Rounding.HALF_DOWN)
        v.document.put_decimal(EXCHANGE_RATE, forex_to_account)

        t.update(currency_code=gross.currency_code)
        if t.security is not None and t.security.currency_code != gross.currency_code:
            t.add_unit(Unit(UnitType.GROSS_VALUE, gross, fx_amount, forex_to_account))

    @staticmethod
    def _add_tax(t, v):
        """Attach a tax, converting it when printed in the foreign currency."""
        tax = Money.of(as_currency_code(v["tax_currency"]), as_amount(v["tax"]))

        if t.currency_code is None or tax.currency_code == t.currency_code:
            t.add_unit(Unit(UnitType.TAX, tax))
            return

        rate = v.document.get_decimal(EXCHANGE_RATE)
        if rate is None:
            logger.warning(f"No exchange rate to convert {tax} into {t.currency_code}, tax ignored")
            return

        t.add_unit(Unit.from_forex(UnitType.TAX, t.currency_code, tax, rate, rounding=Rounding.HALF_UP))

    @staticmethod
    def _set_tax_adjustment_amount(t, v):
        t.update(amount=as_amount(v["amount"]))
        if v["sign"] == "-":
            t.update(type=AccountEntryType.TAXES)

    @staticmethod
    def _wrap_tax_adjustment(t):
        if t.date_time is not None:
            return TransactionItem(t)
        if t.amount == 0:
            return NonImportableItem("Erstattung/Belastung von Steuern mit 0 Euro", t)
        raise MissingFieldError("date_time", "Missing date")
