from typing import Any, Awaitable, Callable, Optional
import logging

logger = logging.getLogger(__name__)


class OptimisticToggle:
    """
    Переключатель с оптимистичным обновлением (подписка, лайк, закладка).

    Состояние меняется сразу, до ответа сервера. При ошибке восстанавливается
    снимок, сделанный в момент запроса, а не инвертируется текущее значение.
    """

    def __init__(
        self,
        active: bool = False,
        count: Optional[int] = None,
        on_error: Optional[Callable[[Exception], Any]] = None,
    ):
        self.active = active
        self.count = count
        self.on_error = on_error
        self.pending = False

    async def toggle(self, mutation: Callable[[bool], Awaitable[Any]]) -> bool:
        """
        ``mutation`` получает целевое значение (True - подписаться/лайкнуть).
        Возвращает True, если сервер подтвердил изменение.
        """
        if self.pending:
            logger.debug("Toggle already in flight, ignoring")
            return False

        baseline = (self.active, self.count)
        target = not self.active

        self.pending = True
        self.active = target
        if self.count is not None:
            self.count = max(self.count + (1 if target else -1), 0)

        try:
            await mutation(target)
        except Exception as e:
            logger.warning(f"Optimistic toggle to {target} failed, rolling back: {e}")
            self.active, self.count = baseline
            if self.on_error is not None:
                self.on_error(e)
            return False
        finally:
            self.pending = False

        return True
