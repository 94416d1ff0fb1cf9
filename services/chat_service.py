"""
Chat service containing the chat-turn pipeline.
Sequences context assembly, memory enrichment, generation and persistence for one turn.
"""
from typing import Optional

from models.api_models import TurnMetadata, TurnRequest, TurnResult
from models.chat_models import EnrichedPrompt, SamplingOptions, TurnStage, TurnTrace
from services.context_assembler import ConversationContextAssembler
from services.generation import GenerationInvoker
from services.memory_gateway import MemoryEnrichmentGateway
from services.persister import ConversationPersister
from utils.constants import ErrorMessages
from utils.errors import GenerationFailed, InvalidRequest
from utils.logger import app_logger
from utils.telemetry import TurnTelemetry


class ChatTurnOrchestrator:
    """Runs a turn through every stage and always returns a TurnResult."""

    def __init__(
        self,
        memory_gateway: MemoryEnrichmentGateway,
        generation: GenerationInvoker,
        persister: ConversationPersister,
        telemetry: Optional[TurnTelemetry] = None,
        assembler: type[ConversationContextAssembler] = ConversationContextAssembler
    ):
        self._assembler = assembler
        self._memory_gateway = memory_gateway
        self._generation = generation
        self._persister = persister
        self._telemetry = telemetry

    async def process_turn(self, request: TurnRequest) -> TurnResult:
        """
        Process one chat turn.

        Validation failures short-circuit before any external call. Generation
        failures and unexpected errors become ``success=False`` results; memory
        and persistence failures never affect the result.
        """
        trace = TurnTrace()
        trace.mark(TurnStage.START)
        model = request.model

        app_logger.info(
            f"Processing turn: {len(request.messages)} messages, "
            f"model={request.model or 'auto'}, memory={request.memory_enabled is not False}"
        )

        try:
            trace.mark(TurnStage.VALIDATE)
            self._assembler.validate(request)

            trace.mark(TurnStage.ASSEMBLE_CONTEXT)
            base_prompt, history_window = self._assembler.assemble(request)

            if request.memory_enabled is not False:
                trace.mark(TurnStage.ENRICH)
                enrichment = await self._memory_gateway.enrich(base_prompt)
            else:
                trace.mark(TurnStage.SKIP_ENRICH)
                enrichment = MemoryEnrichmentGateway.unaugmented(base_prompt)

            enriched = EnrichedPrompt(
                base_prompt=base_prompt,
                history_window=history_window,
                user_turn=enrichment.enriched_prompt,
                memory_used=enrichment.context_used,
                memory_context_length=enrichment.context_length
            )

            trace.mark(TurnStage.GENERATE)
            model = await self._generation.resolve_model(request.model)
            generation = await self._generation.invoke(
                model,
                enriched,
                SamplingOptions(temperature=request.temperature, max_tokens=request.max_tokens)
            )

            response_time_ms = trace.elapsed_ms()
            result = TurnResult(
                success=True,
                message=generation.response,
                metadata=TurnMetadata(
                    model=generation.model,
                    response_time_ms=response_time_ms,
                    memory_used=enriched.memory_used,
                    context_length=enriched.memory_context_length
                )
            )
        except InvalidRequest as e:
            app_logger.warning(f"Rejected turn: {e.message}")
            result = self._failure(e.message, model, trace)
        except GenerationFailed as e:
            app_logger.error(f"Turn failed during generation: {e.message}")
            result = self._failure(e.message, e.model or model, trace)
        except Exception as e:
            app_logger.error(f"Turn failed unexpectedly: {e}", exc_info=True)
            result = self._failure(str(e) or ErrorMessages.UNEXPECTED, model, trace)
        else:
            trace.mark(TurnStage.PERSIST)
            try:
                self._persister.persist(base_prompt, generation.response)
            except Exception as e:
                app_logger.warning(f"Could not schedule conversation persistence: {e}")
            trace.mark(TurnStage.COMPLETE)
            app_logger.info(
                f"Turn completed: model={result.metadata.model}, "
                f"{result.metadata.response_time_ms}ms, memory_used={result.metadata.memory_used}"
            )

        app_logger.debug(f"Turn trace: {trace.summary()}")
        if self._telemetry is not None:
            self._telemetry.record_turn(result.success, result.metadata.response_time_ms)
        return result

    @staticmethod
    def _failure(error: str, model: Optional[str], trace: TurnTrace) -> TurnResult:
        response_time_ms = trace.mark(TurnStage.FAILED)
        return TurnResult(
            success=False,
            error=error,
            metadata=TurnMetadata(
                model=model or "unknown",
                response_time_ms=response_time_ms,
                memory_used=False,
                context_length=0
            )
        )
