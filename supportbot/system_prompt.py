"""
System prompt builder for the support assistant.

The persona block is sent first in every generation request; retrieved
knowledge base context follows as a second system message when present.
"""

from . import config

# Fixed replies used when the pipeline cannot produce a generated answer
REPHRASE_REPLY = "Jag är osäker, kan du omformulera?"
APOLOGY_REPLY = "Jag kan tyvärr inte svara just nu."
DUMMY_APOLOGY_REPLY = "Jag kan tyvärr inte svara på det just nu."

CONTEXT_HEADER = "KONTEKST FRÅN KB:"


def build_system_prompt(company_name: str = None, booking_url: str = None) -> str:
    """Persona, language, lead-collection and reply-length policy."""
    company_name = company_name or config.COMPANY_NAME
    booking_url = booking_url or config.BOOKING_URL
    return f"""Du är en professionell svensk kundservice- och säljassistent för företaget {company_name}.
Mål: svara korrekt, kortfattat och trevligt, samla leads, och erbjuda bokning när det passar.
Regler:
- Svara på svenska.
- Om du är osäker: fråga ett förtydligande eller erbjud mänsklig handoff.
- Använd alltid fakta från kontexten först. Om inget hittas: ge ett försiktigt svar och markera att du är osäker.
- För säljfrågor: erbjud nästa steg (t.ex. ‘Vill du boka en snabb demo?’) och länka bokningen: {booking_url}.
- Samla lead-fält när relevant: namn, e-post, telefon, företagsnamn, behov (frivilligt). Bekräfta innan du sparar.
- Om användaren vill prata med människa: samla kontaktuppgifter och säg “Jag vidarebefordrar detta till en kollega direkt.”
- Håll svaren under 120 ord. Använd punktlistor vid behov."""


def build_context_message(context: str) -> str:
    return f"{CONTEXT_HEADER}\n{context}"
