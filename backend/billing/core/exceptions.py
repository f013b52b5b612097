"""
Eccezioni Custom per l'applicazione.
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori.

Gerarchia:
- BusinessValidationError (422): input malformato o fuori range
  (righe documento, aliquote, importi). Mai ritentato.
- NotFoundError (404): id/token sconosciuto o fuori dall'ambito azienda.
- StateConflictError (400): operazione non ammessa nello stato corrente
  (modifica di un'offerta non in bozza, doppia accettazione, ...).
- ConflictError (409): violazioni di integrità (numerazione duplicata).
- StorageError (500): errore del livello di persistenza. Il dettaglio
  tecnico viene loggato, al chiamante arriva un messaggio generico.

NOTA: BusinessValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (gestiti da FastAPI → 422)
- BusinessValidationError: violazioni delle regole di business logic (gestiti dal nostro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "InvalidLineItemError",
    "EmptyDocumentError",
    "ConflictError",
    "StateConflictError",
    "NotEditableError",
    "InvalidTransitionError",
    "AlreadyAcceptedError",
    "QuoteExpiredError",
    "StorageError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Errore interno"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato (default: quello di classe)
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi da passare al frontend (default: None)
        """
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.

    Utilizzata anche quando la risorsa esiste ma appartiene
    a un'altra azienda: il chiamante non deve poterlo distinguere.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Risorsa non trovata"


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "La quantità deve essere maggiore di zero"
        - "L'importo del pagamento non può essere negativo"
        - "Un documento deve contenere almeno una riga"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"
    default_detail: str = "Validazione dati fallita"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class InvalidLineItemError(BusinessValidationError):
    """Riga documento non valida (quantità, prezzo o aliquota fuori range)."""

    error_code: str = "INVALID_LINE_ITEM"
    default_detail: str = "Riga documento non valida"


class EmptyDocumentError(BusinessValidationError):
    """Documento senza righe."""

    error_code: str = "EMPTY_DOCUMENT"
    default_detail: str = "Un documento deve contenere almeno una riga"


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di integrità.

    Utilizzata quando il database rifiuta una scrittura
    (es. numero fattura già esistente per l'azienda).
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"
    default_detail: str = "Conflitto di stato"


class StateConflictError(ConflictError):
    """
    Operazione non consentita nello stato corrente del documento.

    Restituita come 400 con un motivo specifico in error_code.
    """

    status_code: int = 400
    error_code: str = "STATE_CONFLICT"
    default_detail: str = "Operazione non consentita nello stato corrente"


class NotEditableError(StateConflictError):
    """Documento non modificabile (solo le bozze lo sono)."""

    error_code: str = "NOT_EDITABLE"
    default_detail: str = "Solo i documenti in bozza possono essere modificati"


class InvalidTransitionError(StateConflictError):
    """Transizione di stato non prevista dalla macchina a stati."""

    error_code: str = "INVALID_TRANSITION"
    default_detail: str = "Transizione di stato non consentita"


class AlreadyAcceptedError(StateConflictError):
    """Offerta già accettata o già convertita in fattura."""

    error_code: str = "ALREADY_ACCEPTED"
    default_detail: str = "Questa offerta è già stata accettata"


class QuoteExpiredError(StateConflictError):
    """Offerta scaduta al momento dell'accettazione."""

    error_code: str = "QUOTE_EXPIRED"
    default_detail: str = "Questa offerta è scaduta"


class StorageError(AppException):
    """
    Errore del livello di persistenza.

    Il messaggio verso il chiamante resta generico: il dettaglio
    dell'errore SQL viene solo loggato.
    """

    status_code: int = 500
    error_code: str = "STORAGE_ERROR"
    default_detail: str = "Operazione non riuscita, riprovare più tardi"
