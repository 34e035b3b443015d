from dataclasses import dataclass

from task_notify.output.base import ChannelResult


@dataclass(frozen=True)
class SummaryReport:
    results: tuple[ChannelResult, ...]

    @classmethod
    def from_results(cls, results: list[ChannelResult]) -> "SummaryReport":
        return cls(results=tuple(results))

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def effects(self) -> list[str]:
        """Distinct effects of the channels that succeeded, in result order."""
        seen: list[str] = []
        for r in self.results:
            if r.success and r.effect and r.effect not in seen:
                seen.append(r.effect)
        return seen

    @property
    def needs_setup(self) -> list[str]:
        return [r.channel for r in self.results if r.config_error]

    def lines(self) -> list[str]:
        if not self.results:
            return ["Notification summary: no channels enabled"]

        passed = sum(1 for r in self.results if r.success)
        out = [f"Notification summary: {passed}/{len(self.results)} channels succeeded"]
        for r in self.results:
            if r.success:
                out.append(f"  [PASS] {r.channel}")
            else:
                out.append(f"  [FAIL] {r.channel}: {r.error}")

        if self.effects:
            out.append(f"Expect: {', '.join(self.effects)}")
        else:
            out.append("Expect: nothing was delivered")
        return out

    def render(self) -> str:
        return "\n".join(self.lines())
