"""
User-facing texts of the intake flow (Ukrainian).
"""

from typing import Iterable, Sequence

from ...core.models import Slot, StoredSlot

EXAMPLE_TEXT = "Завтра я доступний з 10 до 13 ургент, і з 15 до 17 ВП"

WELCOME = (
    "Ласкаво просимо до PetSOS Schedule Bot! 🐾\n\n"
    "Я допомагаю вам керувати вашими слотами доступності.\n\n"
    "Команди:\n"
    "/start - Інструкції з використання\n"
    "/add_slots - Додати нові слоти доступності\n"
    "/my_slots [YYYY-MM] - Переглянути ваші слоти (за замовчуванням поточний місяць)\n"
    "/clear_month [YYYY-MM] - Очистити всі слоти за місяць (з підтвердженням)"
)
WELCOME_ADMIN_LINE = "\n\n👑 Ви адміністратор PetSOS."
WELCOME_EXAMPLES = (
    "\n\nНадішліть голосове повідомлення або текст з вашою доступністю, наприклад:\n"
    f"\"{EXAMPLE_TEXT}\"\n"
    "\"Сьогодні з 9 до 12 тільки ургент\"\n"
    "\"У понеділок з 14 до 18 ВП, у середу з 10 до 15 ургент\""
)

ASK_PHONE = "📱 Для повної реєстрації, будь ласка, поділіться вашим номером телефону:"
SHARE_PHONE_BUTTON = "📱 Поділитися номером"
PHONE_SAVED = (
    "✅ Номер телефону збережено: {phone}\n\n"
    "Тепер ви можете додавати слоти доступності через /add_slots"
)
PHONE_SAVE_FAILED = "❌ Помилка збереження номера телефону."

ADD_INSTRUCTIONS = (
    "✅ Готово! Тепер надішли голосове або текстом свої вільні години.\n\n"
    "Приклади:\n"
    "• «Завтра ургент з 10 до 13. ВП не беру.»\n"
    "• «У понеділок: ургент 9–12, ВП 16–18.»\n\n"
    "Після цього я покажу слоти, і ти зможеш їх підтвердити ✅"
)

USE_ADD_SLOTS_FIRST = "ℹ️ Для додавання слотів спочатку використайте команду /add_slots"
PROCESSING_TEXT = "🔄 Обробляю ваше повідомлення..."
PROCESSING_VOICE = "🎤 Обробляю ваше голосове повідомлення..."

TRANSCRIPT_EMPTY = (
    "❌ Не вдалося розпізнати голосове повідомлення. "
    "Будь ласка, спробуйте ще раз або надішліть текст."
)
TRANSCRIPTION_FAILED = (
    "❌ Помилка обробки голосового повідомлення. Будь ласка, спробуйте ще раз або надішліть текст."
)
TRANSCRIPT_LINE = "📝 Транскрипт: \"{transcript}\"\n\n"
NO_VALID_SLOTS = (
    "❌ Валідних слотів доступності не знайдено в: \"{text}\"\n\n"
    "Будь ласка, спробуйте ще раз з більш чітким повідомленням, наприклад:\n"
    f"\"{EXAMPLE_TEXT}\""
)
EXTRACTION_UNCLEAR = (
    "❌ Не вдалося розібрати ваше повідомлення. "
    "Будь ласка, спробуйте ще раз, сформулювавши доступність чіткіше."
)
EXTRACTION_FAILED = "❌ Помилка обробки тексту. Будь ласка, спробуйте ще раз."

PROPOSAL = "✅ Витягнуті слоти:\n{slots}\n\nБудь ласка, підтвердіть або відредагуйте:"
BUTTON_CONFIRM = "✅ Підтвердити"
BUTTON_EDIT = "✏️ Відредагувати"
BUTTON_CANCEL = "❌ Скасувати"

NOT_YOUR_MESSAGE = "Це не ваше повідомлення."
UNKNOWN_ACTION = "Невідома дія."
NOTHING_TO_CONFIRM = "Слотів для підтвердження не знайдено."
NOTHING_TO_EDIT = "Слотів для редагування не знайдено."
SAVED = "✅ Слоти підтверджено та збережено!\n\n{slots}\n\nНових слотів додано: {inserted}"
SAVED_NOTICE = "Слоти успішно збережено!"
SAVE_FAILED = "Помилка збереження слотів. Будь ласка, спробуйте ще раз."
EDIT_PROMPT = (
    "✏️ Будь ласка, надішліть ваш виправлений текст з доступністю.\n\n"
    "Поточні слоти:\n{slots}\n\n"
    "Надішліть виправлену версію зараз."
)
CANCELLED = "❌ Скасовано. Слоти не збережено."
CANCELLED_NOTICE = "Скасовано"

NO_SLOTS_FOR_MONTH = (
    "У вас немає слотів за {year_month}. "
    "Надішліть мені голосове повідомлення або текст з вашою доступністю!"
)
MONTH_SLOTS = "Ваші слоти доступності за {year_month}:\n\n{slots}"
STORAGE_FAILED = "❌ Помилка доступу до розкладу. Будь ласка, спробуйте пізніше."
UNEXPECTED_ERROR = "❌ Сталася технічна помилка. Будь ласка, спробуйте ще раз трохи пізніше."

NOTHING_TO_CLEAR = "У вас немає слотів за {year_month} для видалення."
CLEAR_QUESTION = (
    "⚠️ Ви впевнені, що хочете видалити всі {count} слотів за {year_month}?\n\n"
    "Цю дію неможливо скасувати!"
)
BUTTON_CLEAR_CONFIRM = "✅ Так, видалити"
CLEAR_NOT_FOUND = "Підтвердження не знайдено."
CLEARED = "✅ Видалено {count} слотів за {year_month}."
CLEARED_NOTICE = "Слоти видалено!"
CLEAR_FAILED = "Помилка видалення слотів. Будь ласка, спробуйте ще раз."
CLEAR_CANCELLED = "❌ Скасовано. Слоти не видалено."


def format_slots(slots: Sequence[Slot]) -> str:
    if not slots:
        return "Слотів не знайдено."
    return "\n".join(
        f"{i}. {s.date} {s.start_time}-{s.end_time} ({s.type.value})"
        for i, s in enumerate(slots, start=1)
    )


def format_stored_slots(slots: Iterable[StoredSlot]) -> str:
    return "\n".join(
        f"📅 {s.date} {s.start_time}-{s.end_time} ({s.type.value})" for s in slots
    )
