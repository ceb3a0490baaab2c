"""
Pipeline Orchestration app.

Runs pipeline ticks over persisted state:
raw events → observations → hypotheses → risk → decision → gate/dispatch → learning

Key concepts:
- The RawEvent claim is the only synchronization point; ticks may overlap
- One PipelineRun per tick, one StageExecution per stage and observation
- Per-observation error boundaries: a failure never aborts the tick
- Monitoring signals at every stage boundary
- Live, uncached stats over persisted state
"""
