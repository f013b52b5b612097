import asyncio
import sys
import os

from sqlalchemy import text

# Aggiungi backend/ alla PYTHONPATH per importare billing.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from billing.core.database import engine
from billing.models import Base

# Riferimento QRR: 10 cifre dall'azienda + 16 dal numero fattura + check digit modulo 10 ricorsivo
QR_REFERENCE_FUNCTION = """
CREATE OR REPLACE FUNCTION generate_qr_reference(invoice_num text, company_uuid text)
RETURNS text AS $$
DECLARE
    base text;
    carry int := 0;
    carry_table int[] := ARRAY[0, 9, 4, 6, 8, 2, 7, 1, 3, 5];
    i int;
BEGIN
    base := lpad(abs(hashtext(company_uuid))::text, 10, '0')
        || lpad(regexp_replace(invoice_num, '[^0-9]', '', 'g'), 16, '0');
    FOR i IN 1..26 LOOP
        carry := carry_table[((carry + substr(base, i, 1)::int) % 10) + 1];
    END LOOP;
    RETURN base || ((10 - carry) % 10)::text;
END;
$$ LANGUAGE plpgsql IMMUTABLE;
"""


async def reset():
    print("Connessione al database, eliminazione tabelle...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tabelle eliminate. Creazione nuove tabelle...")
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text(QR_REFERENCE_FUNCTION))
    print("Database resettato con successo!")

if __name__ == "__main__":
    asyncio.run(reset())
